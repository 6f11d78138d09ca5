"""Tests for the crawl, audit, score pipeline with the browser faked out."""

from unittest.mock import AsyncMock, MagicMock

import pytest

pytest_plugins = ('pytest_asyncio',)

from sitescan import scanner
from sitescan.config import ScanConfig
from sitescan.models import CrawledPage, Issue, IssueCategory, ScanJob, Severity, Viewport
from sitescan.page_auditor import AuditResult
from sitescan.scanner import ScanPipeline
from sitescan.scorer import build_page_report


class FakeSession:
    """Async context manager standing in for BrowserSession."""

    instances = []

    def __init__(self, config=None):
        self.config = config
        self.entered = False
        self.exited = False
        FakeSession.instances.append(self)

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True


@pytest.fixture
def patched(monkeypatch):
    FakeSession.instances = []
    pages = [
        CrawledPage("https://example.com/"),
        CrawledPage("https://example.com/about", "https://example.com/", 1),
    ]
    issue = Issue(
        IssueCategory.SEO, Severity.MINOR, "Missing Title", "Page has no title tag",
        "https://example.com/about",
    )

    fetcher = MagicMock()
    fetcher.close = AsyncMock()
    crawler = MagicMock()
    crawler.crawl = AsyncMock(return_value=pages)
    auditor = MagicMock()
    auditor.audit_pages = AsyncMock(return_value=AuditResult(
        issues=[issue],
        pages=[build_page_report(page.url, [issue]) for page in pages],
    ))

    crawler_cls = MagicMock(return_value=crawler)
    auditor_cls = MagicMock(return_value=auditor)
    monkeypatch.setattr(scanner, "BrowserSession", FakeSession)
    monkeypatch.setattr(scanner, "BrowserLinkFetcher", MagicMock(return_value=fetcher))
    monkeypatch.setattr(scanner, "SiteCrawler", crawler_cls)
    monkeypatch.setattr(scanner, "PageAuditor", auditor_cls)

    return {
        "fetcher": fetcher,
        "crawler_cls": crawler_cls,
        "auditor_cls": auditor_cls,
        "auditor": auditor,
    }


class TestScanPipeline:

    @pytest.mark.asyncio
    async def test_runs_crawl_audit_score(self, patched):
        job = ScanJob(
            id="job-1",
            url="https://example.com/",
            viewports=[Viewport("Mobile", 390, 844)],
            page_limit=7,
        )
        progress = []

        report = await ScanPipeline(scan_config=ScanConfig(max_depth=2))(
            job, lambda percent, message: progress.append((percent, message))
        )

        assert report.overall_score == 99
        assert report.categories["SEO"] == 95
        assert [page.url for page in report.pages] == [
            "https://example.com/",
            "https://example.com/about",
        ]
        assert [p for p, _ in progress] == [5, 10, 20]
        assert progress[-1][1] == "Found 2 pages. Starting audit..."

        _, kwargs = patched["crawler_cls"].call_args
        assert kwargs == {"max_depth": 2, "max_pages": 7}
        patched["fetcher"].close.assert_awaited_once()

        auditor_args, _ = patched["auditor_cls"].call_args
        assert auditor_args[1] == job.viewports

        session = FakeSession.instances[0]
        assert session.entered and session.exited

    @pytest.mark.asyncio
    async def test_crawl_failure_propagates_and_closes_fetcher(self, patched):
        crawler = patched["crawler_cls"].return_value
        crawler.crawl.side_effect = RuntimeError("browser disconnected")
        job = ScanJob(id="job-2", url="https://example.com/")

        with pytest.raises(RuntimeError):
            await ScanPipeline().run(job, lambda percent, message: None)

        patched["fetcher"].close.assert_awaited_once()
        assert FakeSession.instances[0].exited
        patched["auditor"].audit_pages.assert_not_awaited()
