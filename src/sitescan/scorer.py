"""Deterministic weighted scoring of audit issues.

Every category starts at 100 and loses a fixed penalty per issue according to
its severity, never going below 0. The overall score is the weighted sum of
the category scores, rounded half up. Penalties are summed, so the result does
not depend on the order of the issues.
"""

import math
from collections import Counter
from typing import Dict, Iterable, List, Optional

from sitescan.constants import BASE_CATEGORY_SCORE, CATEGORY_WEIGHTS, SEVERITY_PENALTIES
from sitescan.models import Issue, IssueCategory, PageMetrics, PageReport, ScoreReport


def category_scores(issues: Iterable[Issue]) -> Dict[str, int]:
    """Score each of the six categories from a multiset of issues."""
    penalties: Counter = Counter()
    for issue in issues:
        penalties[issue.category.value] += SEVERITY_PENALTIES[issue.severity.value]

    return {
        category.value: max(0, BASE_CATEGORY_SCORE - penalties[category.value])
        for category in IssueCategory
    }


def weighted_score(categories: Dict[str, int]) -> int:
    """Overall score from category scores, rounded half up."""
    total = sum(
        categories[category] * weight
        for category, weight in CATEGORY_WEIGHTS.items()
    )
    # Guard against float noise such as 98.99999999 before rounding
    return int(math.floor(round(total, 6) + 0.5))


def calculate_score(
    issues: List[Issue],
    pages: Optional[List[PageReport]] = None,
) -> ScoreReport:
    """
    Score a set of issues.

    Used once per page (with that page's issues) and once per job (with all
    issues and the job's page reports).

    Args:
        issues: Issues to score
        pages: Page reports to attach to the result

    Returns:
        ScoreReport with overall and per-category scores
    """
    categories = category_scores(issues)
    return ScoreReport(
        overall_score=weighted_score(categories),
        categories=categories,
        issues=list(issues),
        pages=list(pages or []),
    )


def build_page_report(url: str, issues: Iterable[Issue], metrics: Optional[PageMetrics] = None) -> PageReport:
    """
    Score one page.

    Only issues whose affected URL equals ``url`` are kept, and all of them
    are kept.

    Args:
        url: The page URL
        issues: Issues collected during the scan (may include other pages)
        metrics: Performance snapshot for the page

    Returns:
        PageReport for the page
    """
    page_issues = [issue for issue in issues if issue.affected_url == url]
    report = calculate_score(page_issues)
    return PageReport(
        url=url,
        score=report.overall_score,
        categories=report.categories,
        metrics=metrics or PageMetrics(),
        issues=page_issues,
    )
