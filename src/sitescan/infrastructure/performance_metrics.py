"""
Browser Performance Metrics Collection.

Real browser-based paint and layout metrics using:
- Largest Contentful Paint API
- Paint Timing API (First Contentful Paint)
- Layout Instability API (for CLS)
- Navigation Timing (fallback when LCP never fires)

The observer script is registered as an init script so that it runs before
any page script, with ``buffered: true`` so entries recorded before the
observers attach are still delivered.
"""

import logging
from typing import List, Optional

from sitescan.config import AuditThresholds, default_thresholds
from sitescan.models import Issue, IssueCategory, PageMetrics, Severity

logger = logging.getLogger(__name__)


# JavaScript installed before navigation
PERFORMANCE_OBSERVER_SCRIPT = """
(() => {
    window.__scanMetrics = { lcp: null, fcp: null, cls: 0, errors: [] };

    if (!('PerformanceObserver' in window)) {
        window.__scanMetrics.errors.push('PerformanceObserver unsupported');
        return;
    }

    // LCP: keep the start time of the most recent candidate
    try {
        new PerformanceObserver((list) => {
            const entries = list.getEntries();
            const lastEntry = entries[entries.length - 1];
            if (lastEntry) {
                window.__scanMetrics.lcp = lastEntry.startTime;
            }
        }).observe({ type: 'largest-contentful-paint', buffered: true });
    } catch (e) {
        window.__scanMetrics.errors.push('LCP observer: ' + e.message);
    }

    // FCP: first paint entry only
    try {
        new PerformanceObserver((list) => {
            for (const entry of list.getEntries()) {
                if (entry.name === 'first-contentful-paint' && window.__scanMetrics.fcp === null) {
                    window.__scanMetrics.fcp = entry.startTime;
                }
            }
        }).observe({ type: 'paint', buffered: true });
    } catch (e) {
        window.__scanMetrics.errors.push('FCP observer: ' + e.message);
    }

    // CLS: running sum, ignoring shifts caused by recent input
    try {
        new PerformanceObserver((list) => {
            for (const entry of list.getEntries()) {
                if (!entry.hadRecentInput) {
                    window.__scanMetrics.cls += entry.value;
                }
            }
        }).observe({ type: 'layout-shift', buffered: true });
    } catch (e) {
        window.__scanMetrics.errors.push('CLS observer: ' + e.message);
    }
})();
"""

# Script to retrieve collected metrics
GET_METRICS_SCRIPT = """
() => {
    const metrics = window.__scanMetrics || { lcp: null, fcp: null, cls: 0, errors: ['not injected'] };
    const navigation = performance.getEntriesByType('navigation')[0];
    return {
        lcp: metrics.lcp,
        fcp: metrics.fcp,
        cls: metrics.cls,
        errors: metrics.errors,
        navigationDuration: navigation ? navigation.duration : null
    };
}
"""


async def inject_performance_observers(page) -> None:
    """
    Register the observer script on a page before it navigates.

    Args:
        page: Playwright page instance
    """
    await page.add_init_script(PERFORMANCE_OBSERVER_SCRIPT)
    logger.debug("Performance observers registered")


async def collect_performance_metrics(page, url: str = "") -> PageMetrics:
    """
    Collect performance metrics from a page.

    Call this after the page has loaded and settled.

    Args:
        page: Playwright page instance
        url: URL being measured (for logging)

    Returns:
        PageMetrics with collected data
    """
    raw_metrics = await page.evaluate(GET_METRICS_SCRIPT)
    metrics = parse_performance_metrics(raw_metrics)

    for error in (raw_metrics or {}).get('errors') or []:
        logger.debug(f"Performance observer problem on {url}: {error}")

    logger.debug(
        f"Collected performance metrics for {url}: "
        f"LCP={metrics.lcp}ms, FCP={metrics.fcp}ms, CLS={metrics.cls:.3f}"
    )
    return metrics


def parse_performance_metrics(raw_metrics: Optional[dict]) -> PageMetrics:
    """Build PageMetrics from the dictionary returned by GET_METRICS_SCRIPT."""
    if not raw_metrics:
        return PageMetrics()

    return PageMetrics(
        lcp=raw_metrics.get('lcp'),
        fcp=raw_metrics.get('fcp'),
        cls=raw_metrics.get('cls') or 0.0,
        navigation_duration=raw_metrics.get('navigationDuration'),
    )


def evaluate_performance(
    metrics: PageMetrics,
    url: str,
    thresholds: Optional[AuditThresholds] = None,
) -> List[Issue]:
    """
    Turn captured metrics into Performance issues.

    Thresholds (Google's "good" limits by default):
    - LCP above 2500ms: Minor
    - FCP above 1800ms: Suggestion
    - CLS above 0.1: Minor
    - no LCP at all and a navigation longer than 5000ms: Suggestion

    Args:
        metrics: Captured metrics for the page
        url: Page the metrics belong to
        thresholds: Optional custom thresholds

    Returns:
        List of issues, possibly empty
    """
    thresholds = thresholds or default_thresholds
    issues: List[Issue] = []

    if metrics.lcp is not None and metrics.lcp > thresholds.lcp_max_ms:
        issues.append(Issue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.MINOR,
            title="Slow Largest Contentful Paint",
            description=(
                f"Largest Contentful Paint took {round(metrics.lcp)}ms "
                f"(should be under {round(thresholds.lcp_max_ms)}ms)"
            ),
            affected_url=url,
        ))

    if metrics.fcp is not None and metrics.fcp > thresholds.fcp_max_ms:
        issues.append(Issue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.SUGGESTION,
            title="Slow First Contentful Paint",
            description=(
                f"First Contentful Paint took {round(metrics.fcp)}ms "
                f"(should be under {round(thresholds.fcp_max_ms)}ms)"
            ),
            affected_url=url,
        ))

    if metrics.cls > thresholds.cls_max:
        issues.append(Issue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.MINOR,
            title="High Cumulative Layout Shift",
            description=(
                f"Cumulative Layout Shift is {metrics.cls:.3f} "
                f"(should be under {thresholds.cls_max})"
            ),
            affected_url=url,
        ))

    if (
        metrics.lcp is None
        and metrics.navigation_duration is not None
        and metrics.navigation_duration > thresholds.slow_load_ms
    ):
        issues.append(Issue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.SUGGESTION,
            title="Slow Load Time",
            description=f"Page took {round(metrics.navigation_duration)}ms to load",
            affected_url=url,
        ))

    return issues
