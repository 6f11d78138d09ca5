"""
Scan pipeline for a single job: crawl, audit, score.

One browser session is launched per job and shared by the crawler and the
page auditor. The queue manager calls the pipeline and owns the job's state
transitions; the pipeline only reports progress.
"""
import logging
from typing import Callable, Optional

from sitescan.browser_config import BrowserConfig, DEFAULT_CONFIG
from sitescan.browser_session import BrowserSession
from sitescan.config import AuditThresholds, ScanConfig, default_thresholds
from sitescan.constants import (
    PROGRESS_CRAWL_START,
    PROGRESS_DISCOVERY_COMPLETE,
    PROGRESS_DISCOVERY_START,
)
from sitescan.models import ScanJob, ScoreReport
from sitescan.page_auditor import PageAuditor
from sitescan.scorer import calculate_score
from sitescan.site_crawler import BrowserLinkFetcher, SiteCrawler

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class ScanPipeline:
    """
    Runs one scan job end to end and returns its ScoreReport.

    Instances are callable so the queue manager can also be given a plain
    coroutine function with the same signature:

        async def pipeline(job: ScanJob, on_progress) -> ScoreReport
    """

    def __init__(
        self,
        browser_config: Optional[BrowserConfig] = None,
        scan_config: Optional[ScanConfig] = None,
        thresholds: Optional[AuditThresholds] = None,
    ):
        self.browser_config = browser_config or DEFAULT_CONFIG
        self.scan_config = scan_config or ScanConfig()
        self.thresholds = thresholds or default_thresholds

    async def __call__(self, job: ScanJob, on_progress: ProgressCallback) -> ScoreReport:
        return await self.run(job, on_progress)

    async def run(self, job: ScanJob, on_progress: ProgressCallback) -> ScoreReport:
        """
        Crawl the job's site, audit every discovered page and score the result.

        Args:
            job: The job being processed
            on_progress: Callback receiving (percent, message)

        Returns:
            ScoreReport covering every audited page

        Raises:
            Exception: Browser launch and other infrastructure failures
                propagate to the caller
        """
        logger.info(f"[{job.id}] Starting scan of {job.url}")
        on_progress(PROGRESS_CRAWL_START, "Starting crawler...")

        async with BrowserSession(self.browser_config) as session:
            on_progress(PROGRESS_DISCOVERY_START, "Discovering pages...")

            fetcher = BrowserLinkFetcher(session, self.browser_config)
            try:
                crawler = SiteCrawler(
                    fetcher,
                    max_depth=self.scan_config.max_depth,
                    max_pages=job.page_limit,
                )
                pages = await crawler.crawl(job.url)
            finally:
                await fetcher.close()

            logger.info(f"[{job.id}] Discovered {len(pages)} pages")
            on_progress(
                PROGRESS_DISCOVERY_COMPLETE,
                f"Found {len(pages)} pages. Starting audit...",
            )

            auditor = PageAuditor(
                session,
                job.viewports,
                thresholds=self.thresholds,
                config=self.browser_config,
            )
            audit = await auditor.audit_pages(pages, on_progress)

        report = calculate_score(audit.issues, audit.pages)
        logger.info(
            f"[{job.id}] Scan finished: score {report.overall_score}, "
            f"{len(report.issues)} issues across {len(report.pages)} pages"
        )
        return report
