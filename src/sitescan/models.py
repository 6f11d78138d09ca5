"""Data models for site scanning."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
import time


class IssueCategory(str, Enum):
    """Diagnostic category an issue is scored under."""
    PERFORMANCE = "Performance"
    RESPONSIVENESS = "Responsiveness & Layout"
    ACCESSIBILITY = "Accessibility"
    SEO = "SEO"
    ERRORS = "Errors & Reliability"
    BEST_PRACTICES = "Best Practices"


class Severity(str, Enum):
    """How much an issue costs its category."""
    CRITICAL = "Critical"
    MAJOR = "Major"
    MINOR = "Minor"
    SUGGESTION = "Suggestion"


class ScanStatus(str, Enum):
    """Lifecycle state of a scan job."""
    QUEUED = "QUEUED"
    SCANNING = "SCANNING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETE, ScanStatus.FAILED)


@dataclass(frozen=True)
class Viewport:
    """A named width x height pair used to check responsive layout."""

    name: str
    width: int
    height: int

    def to_dict(self) -> dict:
        return {"name": self.name, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class CrawledPage:
    """A page discovered by the site crawler."""

    url: str
    referrer: Optional[str] = None
    depth: int = 0


@dataclass(frozen=True)
class Issue:
    """One finding tagged with category, severity and affected URL."""

    category: IssueCategory
    severity: Severity
    title: str
    description: str
    affected_url: str

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "affectedUrl": self.affected_url,
        }


@dataclass
class PageMetrics:
    """Performance snapshot captured while auditing a page."""

    lcp: Optional[float] = None  # Largest Contentful Paint (ms)
    fcp: Optional[float] = None  # First Contentful Paint (ms)
    cls: float = 0.0  # Cumulative Layout Shift (score)
    navigation_duration: Optional[float] = None  # Navigation entry duration (ms)

    def to_dict(self) -> dict:
        return {
            "lcp": self.lcp,
            "fcp": self.fcp,
            "cls": self.cls,
            "navigationDuration": self.navigation_duration,
        }


@dataclass
class PageReport:
    """Per-URL rollup of score, metrics and issues."""

    url: str
    score: int
    categories: dict[str, int] = field(default_factory=dict)
    metrics: PageMetrics = field(default_factory=PageMetrics)
    issues: list[Issue] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "score": self.score,
            "categories": dict(self.categories),
            "metrics": self.metrics.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class ScoreReport:
    """Job-level rollup across all pages."""

    overall_score: int
    categories: dict[str, int] = field(default_factory=dict)
    issues: list[Issue] = field(default_factory=list)
    pages: list[PageReport] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "overallScore": self.overall_score,
            "categories": dict(self.categories),
            "issues": [issue.to_dict() for issue in self.issues],
            "pages": [page.to_dict() for page in self.pages],
        }


@dataclass
class ScanJob:
    """One audit request and its lifecycle state."""

    id: str
    url: str
    viewports: list[Viewport] = field(default_factory=list)
    page_limit: Optional[int] = None  # None means unbounded
    status: ScanStatus = ScanStatus.QUEUED
    progress: int = 0
    message: str = "Waiting in queue..."
    report: Optional[ScoreReport] = None
    created_at: float = field(default_factory=time.time)
    queue_position: Optional[int] = None
    estimated_wait_seconds: Optional[int] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Status snapshot as returned by the status API."""
        return {
            "id": self.id,
            "url": self.url,
            "viewports": [viewport.to_dict() for viewport in self.viewports],
            "pageLimit": self.page_limit,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "report": self.report.to_dict() if self.report else None,
            "timestamp": self.created_at,
            "queuePosition": self.queue_position,
            "estimatedWaitSeconds": self.estimated_wait_seconds,
        }


@dataclass
class SubmissionResult:
    """Answer to a scan submission."""

    job_id: str
    queue_position: Optional[int] = None
    estimated_wait_seconds: Optional[int] = None
