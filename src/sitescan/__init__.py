"""Multi-page website auditing across viewports with weighted scoring."""

__version__ = "0.1.0"

from sitescan.models import (
    IssueCategory,
    Severity,
    ScanStatus,
    Viewport,
    CrawledPage,
    Issue,
    PageMetrics,
    PageReport,
    ScoreReport,
    ScanJob,
    SubmissionResult,
)
from sitescan.config import settings, ScanConfig, AuditThresholds
from sitescan.browser_config import BrowserConfig
from sitescan.browser_session import BrowserSession
from sitescan.site_crawler import SiteCrawler, LinkFetcher, BrowserLinkFetcher, NavigationError
from sitescan.page_auditor import PageAuditor
from sitescan.scorer import calculate_score, build_page_report
from sitescan.events import EventSink, LoggingEventSink, CallbackEventSink
from sitescan.job_store import JobStore, InMemoryJobStore
from sitescan.scanner import ScanPipeline
from sitescan.queue_manager import (
    ScanQueueManager,
    InvalidSubmissionError,
    JobNotFoundError,
)

__all__ = [
    "IssueCategory",
    "Severity",
    "ScanStatus",
    "Viewport",
    "CrawledPage",
    "Issue",
    "PageMetrics",
    "PageReport",
    "ScoreReport",
    "ScanJob",
    "SubmissionResult",
    "settings",
    "ScanConfig",
    "AuditThresholds",
    "BrowserConfig",
    "BrowserSession",
    "SiteCrawler",
    "LinkFetcher",
    "BrowserLinkFetcher",
    "NavigationError",
    "PageAuditor",
    "calculate_score",
    "build_page_report",
    "EventSink",
    "LoggingEventSink",
    "CallbackEventSink",
    "JobStore",
    "InMemoryJobStore",
    "ScanPipeline",
    "ScanQueueManager",
    "InvalidSubmissionError",
    "JobNotFoundError",
]
