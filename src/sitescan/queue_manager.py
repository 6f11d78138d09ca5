"""
Admission and scheduling of scan jobs.

Jobs move QUEUED -> SCANNING -> COMPLETE | FAILED. At most
``max_concurrent_scans`` jobs scan at once; the rest wait in FIFO order and
receive a queue position and an estimated wait, recomputed on every
scheduling pass. Scheduling passes are plain synchronous methods, so on a
single event loop two passes never interleave.

Example:
    manager = ScanQueueManager()
    result = manager.submit("https://example.com", ["mobile", "desktop"], 10)
    await manager.wait_for(result.job_id)
    print(manager.get_status(result.job_id)["report"]["overallScore"])
"""
import asyncio
import logging
import time
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Sequence

from sitescan.config import ScanConfig
from sitescan.constants import (
    DEFAULT_VIEWPORT_IDS,
    GENERIC_FAILURE_MESSAGE,
    PROGRESS_COMPLETE,
    VIEWPORT_PRESETS,
)
from sitescan.events import (
    QUEUE_UPDATE,
    SCAN_COMPLETE,
    SCAN_ERROR,
    SCAN_PROGRESS,
    EventSink,
    LoggingEventSink,
)
from sitescan.job_store import InMemoryJobStore, JobStore
from sitescan.models import ScanJob, ScanStatus, ScoreReport, SubmissionResult, Viewport
from sitescan.url_utils import is_http_url

logger = logging.getLogger(__name__)

Pipeline = Callable[[ScanJob, Callable[[int, str], None]], Awaitable[ScoreReport]]


class InvalidSubmissionError(ValueError):
    """Raised when a scan submission is rejected."""


class JobNotFoundError(KeyError):
    """Raised when a job id is unknown."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(job_id)

    def __str__(self) -> str:
        return f"Job not found: {self.job_id}"


def resolve_viewports(viewport_ids: Optional[Sequence[str]]) -> List[Viewport]:
    """
    Map preset ids to Viewports.

    None selects the default presets. An empty selection or an unknown id is
    rejected.
    """
    if viewport_ids is None:
        viewport_ids = DEFAULT_VIEWPORT_IDS
    if len(viewport_ids) == 0:
        raise InvalidSubmissionError("At least one viewport must be selected")

    viewports = []
    for viewport_id in viewport_ids:
        preset = VIEWPORT_PRESETS.get(viewport_id)
        if preset is None:
            known = ", ".join(sorted(VIEWPORT_PRESETS))
            raise InvalidSubmissionError(f"Unknown viewport '{viewport_id}' (known: {known})")
        viewports.append(Viewport(**preset))
    return viewports


def resolve_page_limit(page_limit: Optional[int], default: int) -> Optional[int]:
    """
    Normalize a requested page limit.

    None selects the default, 0 is rejected and a negative value means
    unbounded (returned as None).
    """
    if page_limit is None:
        return default
    if page_limit == 0:
        raise InvalidSubmissionError("Page limit must not be 0")
    if page_limit < 0:
        return None
    return page_limit


class ScanQueueManager:
    """
    Bounded-concurrency FIFO scheduler for scan jobs.

    Must be used from within a running asyncio event loop, since promoted
    jobs are started as tasks.
    """

    def __init__(
        self,
        pipeline: Optional[Pipeline] = None,
        store: Optional[JobStore] = None,
        sink: Optional[EventSink] = None,
        config: Optional[ScanConfig] = None,
    ):
        """
        Initialize the queue manager.

        Args:
            pipeline: Coroutine function running one job; defaults to ScanPipeline
            store: Job storage; defaults to InMemoryJobStore
            sink: Push-event sink; defaults to LoggingEventSink
            config: Concurrency cap, default page limit and estimator settings
        """
        self.config = config or ScanConfig()
        if self.config.max_concurrent_scans < 1:
            raise ValueError("max_concurrent_scans must be at least 1")

        if pipeline is None:
            from sitescan.scanner import ScanPipeline
            pipeline = ScanPipeline(scan_config=self.config)

        self._pipeline = pipeline
        self._store = store or InMemoryJobStore()
        self._sink = sink or LoggingEventSink()

        self._queue: Deque[str] = deque()
        self._active_count = 0
        self._tasks: Dict[str, asyncio.Task] = {}
        self._durations: Deque[float] = deque(maxlen=self.config.duration_samples)

    # --- Public API ---

    @property
    def max_concurrent_scans(self) -> int:
        return self.config.max_concurrent_scans

    @property
    def active_count(self) -> int:
        return self._active_count

    @property
    def queued_job_ids(self) -> List[str]:
        return list(self._queue)

    @property
    def average_duration(self) -> float:
        """Mean of the recent successful job durations, in seconds."""
        if not self._durations:
            return self.config.default_scan_duration
        return sum(self._durations) / len(self._durations)

    def submit(
        self,
        url: str,
        viewport_ids: Optional[Sequence[str]] = None,
        page_limit: Optional[int] = None,
    ) -> SubmissionResult:
        """
        Validate and enqueue a scan, then run a scheduling pass.

        Args:
            url: Absolute http(s) URL to scan
            viewport_ids: Preset ids; None selects mobile, tablet and desktop
            page_limit: Maximum pages; None for the default, negative for unbounded

        Returns:
            SubmissionResult with the job id, plus queue position and
            estimated wait when the job did not start immediately

        Raises:
            InvalidSubmissionError: If the submission is malformed
        """
        if not url or not isinstance(url, str):
            raise InvalidSubmissionError("URL is required")
        if not is_http_url(url):
            raise InvalidSubmissionError(f"URL must be an absolute http(s) URL: {url}")

        viewports = resolve_viewports(viewport_ids)
        limit = resolve_page_limit(page_limit, self.config.default_page_limit)

        job = ScanJob(
            id=str(uuid.uuid4()),
            url=url,
            viewports=viewports,
            page_limit=limit,
        )
        self._store.put(job)
        self._queue.append(job.id)
        logger.info(f"[{job.id}] Queued scan of {url} ({len(viewports)} viewports, limit {limit})")

        self._process_queue()

        return SubmissionResult(
            job_id=job.id,
            queue_position=job.queue_position,
            estimated_wait_seconds=job.estimated_wait_seconds,
        )

    def get_status(self, job_id: str) -> Dict[str, Any]:
        """
        Snapshot of a job's current state.

        Raises:
            JobNotFoundError: If the job id is unknown
        """
        return self.get_job(job_id).to_dict()

    def get_job(self, job_id: str) -> ScanJob:
        job = self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def wait_for(self, job_id: str) -> ScanJob:
        """
        Wait until a job reaches COMPLETE or FAILED and return it.

        Raises:
            JobNotFoundError: If the job id is unknown
        """
        job = self.get_job(job_id)
        while not job.status.is_terminal:
            task = self._tasks.get(job_id)
            if task is not None:
                await asyncio.shield(task)
            else:
                # Still queued; let running jobs make progress
                await asyncio.sleep(0.05)
        return job

    async def join(self) -> None:
        """Wait until no job is queued or scanning."""
        while self._queue or self._tasks:
            tasks = list(self._tasks.values())
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            else:
                await asyncio.sleep(0.05)

    # --- Scheduling ---

    def _process_queue(self) -> None:
        """Promote queued jobs while capacity remains, then refresh positions."""
        while self._queue and self._active_count < self.config.max_concurrent_scans:
            job = self._store.get(self._queue.popleft())
            if job is None or job.status != ScanStatus.QUEUED:
                continue
            self._start_job(job)

        self._update_queue_positions()

    def _start_job(self, job: ScanJob) -> None:
        self._active_count += 1
        job.status = ScanStatus.SCANNING
        job.progress = 0
        job.message = "Starting scan..."
        job.queue_position = None
        job.estimated_wait_seconds = None
        job.started_at = time.time()
        self._store.put(job)

        logger.info(f"[{job.id}] Starting scan ({self._active_count}/{self.max_concurrent_scans} active)")
        self._tasks[job.id] = asyncio.create_task(self._run_job(job))

    def _update_queue_positions(self) -> None:
        """Recompute position and wait estimate for every queued job."""
        cap = self.config.max_concurrent_scans
        average = self.average_duration

        for index, job_id in enumerate(self._queue):
            job = self._store.get(job_id)
            if job is None:
                continue

            position = index + 1
            job.queue_position = position
            job.estimated_wait_seconds = int(round(position * average / cap))
            self._store.put(job)

            self._emit(job, QUEUE_UPDATE, {
                "jobId": job.id,
                "queuePosition": job.queue_position,
                "estimatedWaitSeconds": job.estimated_wait_seconds,
            })

    def _progress_callback(self, job: ScanJob) -> Callable[[int, str], None]:
        def on_progress(progress: int, message: str) -> None:
            if job.status != ScanStatus.SCANNING:
                return
            # Progress never moves backwards
            job.progress = max(job.progress, min(int(progress), PROGRESS_COMPLETE))
            job.message = message
            self._store.put(job)
            self._emit(job, SCAN_PROGRESS, {
                "jobId": job.id,
                "message": message,
                "progress": job.progress,
            })

        return on_progress

    def _emit(self, job: ScanJob, event: str, payload: Dict[str, Any]) -> None:
        """Send an event to the job's room; delivery failures are only logged."""
        try:
            self._sink.emit(job.id, event, payload)
        except Exception:
            logger.exception(f"[{job.id}] Failed to deliver event '{event}'")

    async def _run_job(self, job: ScanJob) -> None:
        """Run the pipeline for one job and settle its final state."""
        try:
            try:
                report = await self._pipeline(job, self._progress_callback(job))
            except Exception:
                logger.exception(f"[{job.id}] Scan failed for {job.url}")

                job.finished_at = time.time()
                job.status = ScanStatus.FAILED
                job.message = GENERIC_FAILURE_MESSAGE
                self._store.put(job)

                self._emit(job, SCAN_ERROR, {
                    "jobId": job.id,
                    "message": GENERIC_FAILURE_MESSAGE,
                })
                return

            job.finished_at = time.time()
            job.report = report
            job.status = ScanStatus.COMPLETE
            job.progress = PROGRESS_COMPLETE
            job.message = "Scan complete!"
            self._store.put(job)

            self._durations.append(job.finished_at - job.started_at)
            logger.info(
                f"[{job.id}] Scan complete in {job.finished_at - job.started_at:.1f}s "
                f"(score {report.overall_score})"
            )
            self._emit_complete(job)
        finally:
            self._active_count -= 1
            self._tasks.pop(job.id, None)
            self._process_queue()

    def _emit_complete(self, job: ScanJob) -> None:
        try:
            payload = {"jobId": job.id, "report": job.report.to_dict()}
        except Exception:
            logger.exception(f"[{job.id}] Could not serialize report")
            return
        self._emit(job, SCAN_COMPLETE, payload)
