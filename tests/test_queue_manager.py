"""Tests for job admission, scheduling and wait estimation."""

import asyncio

import pytest

pytest_plugins = ('pytest_asyncio',)

from sitescan.config import ScanConfig
from sitescan.events import EventSink
from sitescan.models import ScanStatus
from sitescan.queue_manager import (
    InvalidSubmissionError,
    JobNotFoundError,
    ScanQueueManager,
    resolve_page_limit,
    resolve_viewports,
)
from sitescan.scorer import calculate_score


class RecordingSink(EventSink):
    """EventSink that keeps every emitted event."""

    def __init__(self):
        self.events = []

    def emit(self, room, event, payload):
        self.events.append((room, event, dict(payload)))

    def of(self, event, room=None):
        return [
            payload for r, e, payload in self.events
            if e == event and (room is None or r == room)
        ]


class FailingSink(RecordingSink):
    """RecordingSink whose transport breaks for the given events."""

    def __init__(self, failing_events):
        super().__init__()
        self.failing_events = set(failing_events)

    def emit(self, room, event, payload):
        if event in self.failing_events:
            raise ConnectionError("socket closed")
        super().emit(room, event, payload)


class ControlledPipeline:
    """Pipeline whose jobs finish only when released by the test."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.gates = {}
        self.started = []

    def gate(self, url):
        return self.gates.setdefault(url, asyncio.Event())

    def release(self, url):
        self.gate(url).set()

    async def __call__(self, job, on_progress):
        self.started.append(job.url)
        on_progress(10, "Discovering pages...")
        on_progress(5, "Going backwards")
        await self.gate(job.url).wait()
        if job.url in self.failing:
            raise RuntimeError("Browser crashed")
        on_progress(55, "Scanning...")
        return calculate_score([])


A = "https://a.example.com/"
B = "https://b.example.com/"
C = "https://c.example.com/"


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def pipeline():
    return ControlledPipeline()


def make_manager(pipeline, sink, cap=1):
    return ScanQueueManager(
        pipeline=pipeline,
        sink=sink,
        config=ScanConfig(max_concurrent_scans=cap),
    )


class TestSubmissionValidation:
    """Tests for submission rules."""

    @pytest.mark.parametrize("url", ["", "example.com", "ftp://example.com/", "/relative"])
    def test_invalid_urls(self, pipeline, sink, url):
        manager = make_manager(pipeline, sink)

        with pytest.raises(InvalidSubmissionError):
            manager.submit(url)

    def test_empty_viewports_rejected(self):
        with pytest.raises(InvalidSubmissionError):
            resolve_viewports([])

    def test_unknown_viewport_rejected(self):
        with pytest.raises(InvalidSubmissionError, match="watch"):
            resolve_viewports(["mobile", "watch"])

    def test_default_viewports(self):
        viewports = resolve_viewports(None)

        assert [(v.name, v.width, v.height) for v in viewports] == [
            ("Mobile", 390, 844),
            ("Tablet", 768, 1024),
            ("Desktop", 1440, 900),
        ]

    @pytest.mark.parametrize("requested,expected", [(None, 20), (5, 5), (-1, None)])
    def test_page_limit(self, requested, expected):
        assert resolve_page_limit(requested, 20) == expected

    def test_zero_page_limit_rejected(self):
        with pytest.raises(InvalidSubmissionError):
            resolve_page_limit(0, 20)

    def test_invalid_submission_is_value_error(self):
        assert issubclass(InvalidSubmissionError, ValueError)

    def test_rejected_submission_stores_nothing(self, pipeline, sink):
        manager = make_manager(pipeline, sink)

        with pytest.raises(InvalidSubmissionError):
            manager.submit(A, page_limit=0)

        assert manager.queued_job_ids == []
        assert sink.events == []


class TestGetStatus:

    def test_unknown_job(self, pipeline, sink):
        manager = make_manager(pipeline, sink)

        with pytest.raises(JobNotFoundError):
            manager.get_status("does-not-exist")

    def test_not_found_is_key_error(self):
        assert issubclass(JobNotFoundError, KeyError)

    @pytest.mark.asyncio
    async def test_snapshot(self, pipeline, sink):
        manager = make_manager(pipeline, sink)
        result = manager.submit(A, ["desktop"], 3)

        status = manager.get_status(result.job_id)

        assert status["id"] == result.job_id
        assert status["url"] == A
        assert status["status"] == "SCANNING"
        assert status["pageLimit"] == 3
        assert status["viewports"] == [{"name": "Desktop", "width": 1440, "height": 900}]
        assert status["report"] is None

        pipeline.release(A)
        await manager.join()


class TestScheduling:
    """Tests for the bounded-concurrency queue."""

    @pytest.mark.asyncio
    async def test_cap_of_one_with_three_jobs(self, pipeline, sink):
        manager = make_manager(pipeline, sink, cap=1)

        first = manager.submit(A)
        second = manager.submit(B)
        third = manager.submit(C)

        assert first.queue_position is None
        assert (second.queue_position, second.estimated_wait_seconds) == (1, 60)
        assert (third.queue_position, third.estimated_wait_seconds) == (2, 120)
        assert manager.get_status(first.job_id)["status"] == "SCANNING"
        assert manager.get_status(second.job_id)["status"] == "QUEUED"
        assert manager.active_count == 1

        pipeline.release(A)
        await manager.wait_for(first.job_id)

        assert manager.get_status(first.job_id)["status"] == "COMPLETE"
        assert manager.get_status(second.job_id)["status"] == "SCANNING"
        third_status = manager.get_status(third.job_id)
        assert third_status["status"] == "QUEUED"
        assert third_status["queuePosition"] == 1

        pipeline.release(B)
        pipeline.release(C)
        await manager.join()

        assert pipeline.started == [A, B, C]
        assert manager.get_status(third.job_id)["status"] == "COMPLETE"
        assert manager.active_count == 0

    @pytest.mark.asyncio
    async def test_never_exceeds_cap(self, pipeline, sink):
        manager = make_manager(pipeline, sink, cap=2)
        urls = [f"https://site{i}.example.com/" for i in range(5)]

        for url in urls:
            manager.submit(url)
        await asyncio.sleep(0)

        assert manager.active_count == 2
        assert len(pipeline.started) == 2
        assert len(manager.queued_job_ids) == 3

        for url in urls:
            pipeline.release(url)
        await manager.join()

        assert pipeline.started == urls

    @pytest.mark.asyncio
    async def test_queue_update_events(self, pipeline, sink):
        manager = make_manager(pipeline, sink, cap=1)
        manager.submit(A)
        second = manager.submit(B)

        updates = sink.of("queue:update", room=second.job_id)

        assert updates[-1] == {
            "jobId": second.job_id,
            "queuePosition": 1,
            "estimatedWaitSeconds": 60,
        }

        pipeline.release(A)
        pipeline.release(B)
        await manager.join()

    @pytest.mark.asyncio
    async def test_wait_estimate_uses_recent_durations(self, pipeline, sink):
        manager = make_manager(pipeline, sink, cap=2)
        manager._durations.extend([30.0, 50.0])

        assert manager.average_duration == 40.0
        manager.submit(A)
        manager.submit(B)
        third = manager.submit(C)

        # round(1 * 40 / 2)
        assert third.estimated_wait_seconds == 20

        for url in (A, B, C):
            pipeline.release(url)
        await manager.join()


class TestJobLifecycle:
    """Tests for job completion and failure."""

    @pytest.mark.asyncio
    async def test_completion(self, pipeline, sink):
        manager = make_manager(pipeline, sink)
        result = manager.submit(A)

        pipeline.release(A)
        job = await manager.wait_for(result.job_id)

        assert job.status == ScanStatus.COMPLETE
        assert job.progress == 100
        assert job.report.overall_score == 100
        complete = sink.of("scan:complete", room=result.job_id)
        assert len(complete) == 1
        assert complete[0]["report"]["overallScore"] == 100

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, pipeline, sink):
        manager = make_manager(pipeline, sink)
        result = manager.submit(A)
        await asyncio.sleep(0)

        assert manager.get_status(result.job_id)["progress"] == 10

        pipeline.release(A)
        await manager.wait_for(result.job_id)

        progress = [payload["progress"] for payload in sink.of("scan:progress")]
        assert progress == sorted(progress)
        assert progress == [10, 10, 55]

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, sink):
        pipeline = ControlledPipeline(failing={A})
        manager = make_manager(pipeline, sink, cap=1)
        failed = manager.submit(A)
        succeeded = manager.submit(B)

        pipeline.release(A)
        pipeline.release(B)
        await manager.join()

        failed_status = manager.get_status(failed.job_id)
        assert failed_status["status"] == "FAILED"
        assert failed_status["message"] == "Scan failed due to server error."
        assert failed_status["report"] is None
        assert sink.of("scan:error", room=failed.job_id) == [{
            "jobId": failed.job_id,
            "message": "Scan failed due to server error.",
        }]

        assert manager.get_status(succeeded.job_id)["status"] == "COMPLETE"
        assert manager.active_count == 0

    @pytest.mark.asyncio
    async def test_failed_jobs_do_not_count_toward_estimate(self, sink):
        pipeline = ControlledPipeline(failing={A})
        manager = make_manager(pipeline, sink)
        result = manager.submit(A)

        pipeline.release(A)
        await manager.wait_for(result.job_id)

        assert manager.average_duration == 60.0

    @pytest.mark.asyncio
    async def test_completion_survives_event_delivery_failure(self, pipeline):
        sink = FailingSink({"scan:complete"})
        manager = make_manager(pipeline, sink, cap=1)
        first = manager.submit(A)
        second = manager.submit(B)

        pipeline.release(A)
        pipeline.release(B)
        await manager.join()

        job = manager.get_job(first.job_id)
        assert job.status == ScanStatus.COMPLETE
        assert job.report is not None
        assert job.message == "Scan complete!"
        assert sink.of("scan:error") == []
        assert manager.get_status(second.job_id)["status"] == "COMPLETE"
        assert pipeline.started == [A, B]
        assert manager.active_count == 0

    @pytest.mark.asyncio
    async def test_progress_and_queue_delivery_failures_are_ignored(self, pipeline):
        sink = FailingSink({"scan:progress", "queue:update"})
        manager = make_manager(pipeline, sink, cap=1)
        first = manager.submit(A)
        second = manager.submit(B)

        pipeline.release(A)
        pipeline.release(B)
        await manager.join()

        assert manager.get_status(first.job_id)["status"] == "COMPLETE"
        assert manager.get_status(second.job_id)["status"] == "COMPLETE"
        assert len(sink.of("scan:complete")) == 2
