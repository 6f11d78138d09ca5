"""
Per-page audit pipeline driven through Playwright.

For every crawled page, in crawl order, the auditor opens an isolated browser
context, listens to console/network/exception events, navigates with a
"network settled" wait, runs the in-page content checks, reads the paint and
layout-shift metrics, and checks each configured viewport for horizontal
overflow. Pages are audited one at a time to bound the browser footprint of a
single scan.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.async_api import Error as PlaywrightError

from sitescan.browser_config import BrowserConfig
from sitescan.browser_session import BrowserSession
from sitescan.config import AuditThresholds, default_thresholds
from sitescan.constants import (
    LAYOUT_POLL_INTERVAL_MS,
    PROGRESS_AUDIT_MAX,
    PROGRESS_AUDIT_SPAN,
    PROGRESS_DISCOVERY_COMPLETE,
)
from sitescan.infrastructure.performance_metrics import (
    collect_performance_metrics,
    evaluate_performance,
    inject_performance_observers,
)
from sitescan.models import CrawledPage, Issue, IssueCategory, PageMetrics, PageReport, Severity, Viewport
from sitescan.page_checks import LAYOUT_WIDTH_SCRIPT, content_issues, overflow_issue, run_page_checks
from sitescan.page_events import PageEventCollector
from sitescan.scorer import build_page_report

logger = logging.getLogger(__name__)

# Called with (progress percent, status message)
ProgressCallback = Callable[[int, str], None]


@dataclass
class PageAuditResult:
    """Issues and metrics gathered for one page."""

    page: CrawledPage
    issues: List[Issue] = field(default_factory=list)
    metrics: PageMetrics = field(default_factory=PageMetrics)
    navigated: bool = True


@dataclass
class AuditResult:
    """Combined output of auditing every page of a scan."""

    issues: List[Issue] = field(default_factory=list)
    pages: List[PageReport] = field(default_factory=list)


def audit_progress(pages_completed: int, total_pages: int) -> int:
    """Progress percentage reported before auditing the next page."""
    if total_pages <= 0:
        return PROGRESS_DISCOVERY_COMPLETE
    progress = PROGRESS_DISCOVERY_COMPLETE + math.floor(
        PROGRESS_AUDIT_SPAN * pages_completed / total_pages
    )
    return max(PROGRESS_DISCOVERY_COMPLETE, min(PROGRESS_AUDIT_MAX, progress))


def scan_failed_issue(url: str, error: Exception) -> Issue:
    """Issue recorded when a page could not be loaded or checked."""
    message = getattr(error, "message", None) or str(error)
    return Issue(
        category=IssueCategory.ERRORS,
        severity=Severity.CRITICAL,
        title="Scan Failed",
        description=f"Could not load page for scanning: {message}",
        affected_url=url,
    )


class PageAuditor:
    """
    Audits crawled pages inside a running BrowserSession.

        async with BrowserSession(config) as session:
            auditor = PageAuditor(session, viewports)
            result = await auditor.audit_pages(pages, on_progress)
    """

    def __init__(
        self,
        session: BrowserSession,
        viewports: List[Viewport],
        thresholds: Optional[AuditThresholds] = None,
        config: Optional[BrowserConfig] = None,
    ):
        """
        Initialize the page auditor.

        Args:
            session: Running browser session that provides isolated contexts
            viewports: Ordered viewports checked for horizontal overflow
            thresholds: Performance and heading thresholds
            config: Browser settings; defaults to the session's config
        """
        self._session = session
        self.viewports = list(viewports)
        self.thresholds = thresholds or default_thresholds
        self.config = config or session.config

    async def audit_pages(
        self,
        pages: List[CrawledPage],
        on_progress: Optional[ProgressCallback] = None,
    ) -> AuditResult:
        """
        Audit every page sequentially, in the given order.

        Args:
            pages: Pages produced by the site crawler
            on_progress: Optional callback receiving (percent, message)

        Returns:
            AuditResult with the combined issues and one PageReport per page
        """
        result = AuditResult()
        total = len(pages)

        for index, crawled_page in enumerate(pages):
            if on_progress:
                on_progress(audit_progress(index, total), f"Scanning {crawled_page.url}...")

            page_result = await self.audit_page(crawled_page)

            result.issues.extend(page_result.issues)
            result.pages.append(
                build_page_report(crawled_page.url, page_result.issues, page_result.metrics)
            )

            logger.info(
                f"Audited ({index + 1}/{total}) {crawled_page.url}: "
                f"{len(page_result.issues)} issues"
            )

        return result

    async def audit_page(self, crawled_page: CrawledPage) -> PageAuditResult:
        """
        Audit a single page in a fresh browser context.

        Navigation and in-page failures are recorded as one "Scan Failed"
        issue; the listener issues collected up to that point are kept.
        Failures to create the context itself propagate.

        Args:
            crawled_page: The page to audit

        Returns:
            PageAuditResult for the page
        """
        url = crawled_page.url
        first_viewport = self.viewports[0] if self.viewports else None
        collector = PageEventCollector(url, crawled_page.referrer)
        check_issues: List[Issue] = []
        metrics = PageMetrics()
        navigated = True

        context = await self._session.new_context(first_viewport)
        try:
            page = await context.new_page()
            collector.attach(page)
            await inject_performance_observers(page)

            try:
                await page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout)

                findings = await run_page_checks(page)
                check_issues.extend(content_issues(findings, url, self.thresholds))

                metrics = await collect_performance_metrics(page, url)
                check_issues.extend(evaluate_performance(metrics, url, self.thresholds))

                check_issues.extend(await self._check_viewports(page, url))
            except PlaywrightError as e:
                logger.warning(f"Scan failed for {url}: {e}")
                navigated = False
                check_issues.append(scan_failed_issue(url, e))

            collector.detach(page)
        finally:
            # Contexts are never reused across pages
            await context.close()

        return PageAuditResult(
            page=crawled_page,
            issues=collector.drain() + check_issues,
            metrics=metrics,
            navigated=navigated,
        )

    async def _check_viewports(self, page, url: str) -> List[Issue]:
        """Resize through each viewport and report horizontal overflow."""
        issues: List[Issue] = []

        for viewport in self.viewports:
            await page.set_viewport_size({"width": viewport.width, "height": viewport.height})
            widths = await self._measure_layout(page)

            issue = overflow_issue(viewport, widths["scrollWidth"], widths["clientWidth"], url)
            if issue:
                logger.debug(f"Horizontal overflow on {viewport.name} for {url}")
                issues.append(issue)

        return issues

    async def _measure_layout(self, page) -> dict:
        """
        Wait for layout to settle after a resize and return its widths.

        With polling enabled, returns as soon as two consecutive readings
        agree, never waiting longer than the settle delay. Otherwise sleeps
        the full settle delay before reading once.
        """
        settle_ms = self.config.layout_settle_ms

        if not self.config.poll_layout:
            await page.wait_for_timeout(settle_ms)
            return await page.evaluate(LAYOUT_WIDTH_SCRIPT)

        previous = await page.evaluate(LAYOUT_WIDTH_SCRIPT)
        waited = 0
        while waited < settle_ms:
            interval = min(LAYOUT_POLL_INTERVAL_MS, settle_ms - waited)
            await page.wait_for_timeout(interval)
            waited += interval

            current = await page.evaluate(LAYOUT_WIDTH_SCRIPT)
            if current == previous:
                return current
            previous = current

        return previous
