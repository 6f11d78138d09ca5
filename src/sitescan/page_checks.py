"""
In-page content checks.

One script runs inside the loaded page and reports raw facts about the DOM.
Everything that decides what counts as an issue lives on the Python side, in
plain functions over those facts, so the rules can be tested without a
browser.
"""

from typing import Any, Dict, List, Optional

from sitescan.config import AuditThresholds, default_thresholds
from sitescan.constants import MAX_EVIDENCE_SAMPLES
from sitescan.models import Issue, IssueCategory, Severity, Viewport


PAGE_CHECKS_SCRIPT = """
() => {
    const meta = (name) => document.querySelector(`meta[name="${name}"]`);

    const images = Array.from(document.querySelectorAll('img'));
    const imagesMissingAlt = images.filter(img => {
        const alt = img.getAttribute('alt');
        return alt === null || alt.trim() === '';
    }).length;

    const headingLevels = Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6'))
        .map(h => parseInt(h.tagName.substring(1), 10));

    const description = meta('description');

    const insecureResources = [];
    if (location.protocol === 'https:') {
        const candidates = [
            ...Array.from(document.querySelectorAll('img[src]')).map(el => el.src),
            ...Array.from(document.querySelectorAll('script[src]')).map(el => el.src),
            ...Array.from(document.querySelectorAll('link[rel~="stylesheet"][href]')).map(el => el.href),
        ];
        for (const src of candidates) {
            if (src && src.startsWith('http:')) {
                insecureResources.push(src);
            }
        }
    }

    const unsafeBlankLinks = Array.from(document.querySelectorAll('a[target="_blank"]'))
        .filter(a => {
            const rel = (a.getAttribute('rel') || '').toLowerCase().split(/\\s+/);
            return !rel.includes('noopener') && !rel.includes('noreferrer');
        }).length;

    return {
        title: document.title || '',
        hasMetaDescription: !!(description && (description.getAttribute('content') || '').trim()),
        h1Count: document.querySelectorAll('h1').length,
        hasCanonical: !!document.querySelector('link[rel="canonical"]'),
        imageCount: images.length,
        imagesMissingAlt: imagesMissingAlt,
        headingLevels: headingLevels,
        isHttps: location.protocol === 'https:',
        insecureResources: insecureResources,
        unsafeBlankLinks: unsafeBlankLinks,
        hasViewportMeta: !!meta('viewport'),
    };
}
"""

LAYOUT_WIDTH_SCRIPT = """
() => ({
    scrollWidth: document.documentElement.scrollWidth,
    clientWidth: document.documentElement.clientWidth
})
"""


async def run_page_checks(page) -> Dict[str, Any]:
    """Evaluate PAGE_CHECKS_SCRIPT in the page and return its findings."""
    return await page.evaluate(PAGE_CHECKS_SCRIPT)


def find_heading_jump(levels: List[int], max_jump: int = 1) -> Optional[tuple]:
    """First (previous, current) heading pair that steps down by more than max_jump."""
    for previous, current in zip(levels, levels[1:]):
        if current - previous > max_jump:
            return previous, current
    return None


def accessibility_issues(
    findings: Dict[str, Any],
    url: str,
    thresholds: Optional[AuditThresholds] = None,
) -> List[Issue]:
    """Missing alt text and skipped heading levels."""
    thresholds = thresholds or default_thresholds
    issues: List[Issue] = []

    missing_alt = findings.get('imagesMissingAlt', 0)
    if missing_alt > 0:
        issues.append(Issue(
            category=IssueCategory.ACCESSIBILITY,
            severity=Severity.MAJOR,
            title="Images Missing Alt Text",
            description=f"{missing_alt} image(s) have no alt text",
            affected_url=url,
        ))

    jump = find_heading_jump(findings.get('headingLevels', []), thresholds.max_heading_jump)
    if jump:
        previous, current = jump
        issues.append(Issue(
            category=IssueCategory.ACCESSIBILITY,
            severity=Severity.MINOR,
            title="Skipped Heading Level",
            description=f"Heading level jumps from H{previous} to H{current}",
            affected_url=url,
        ))

    return issues


def seo_issues(findings: Dict[str, Any], url: str) -> List[Issue]:
    """Title, meta description, H1 and canonical checks."""
    issues: List[Issue] = []

    def add(severity: Severity, title: str, description: str) -> None:
        issues.append(Issue(
            category=IssueCategory.SEO,
            severity=severity,
            title=title,
            description=description,
            affected_url=url,
        ))

    if not (findings.get('title') or '').strip():
        add(Severity.MINOR, "Missing Title", "Page has no title tag")

    if not findings.get('hasMetaDescription'):
        add(Severity.SUGGESTION, "Missing Meta Description", "Page should have a meta description")

    h1_count = findings.get('h1Count', 0)
    if h1_count == 0:
        add(Severity.MAJOR, "Missing H1", "Page has no H1 heading")
    elif h1_count > 1:
        add(Severity.MINOR, "Multiple H1 Tags", f"Page has {h1_count} H1 headings; use exactly one")

    if not findings.get('hasCanonical'):
        add(Severity.SUGGESTION, "Missing Canonical Link", "Page should declare a canonical URL")

    return issues


def best_practice_issues(findings: Dict[str, Any], url: str) -> List[Issue]:
    """Mixed content and unsafe target=_blank links."""
    issues: List[Issue] = []

    insecure = findings.get('insecureResources') or []
    if findings.get('isHttps') and insecure:
        samples = ", ".join(insecure[:MAX_EVIDENCE_SAMPLES])
        issues.append(Issue(
            category=IssueCategory.BEST_PRACTICES,
            severity=Severity.MAJOR,
            title="Mixed Content",
            description=f"{len(insecure)} resource(s) loaded over HTTP on an HTTPS page: {samples}",
            affected_url=url,
        ))

    unsafe_links = findings.get('unsafeBlankLinks', 0)
    if unsafe_links > 0:
        issues.append(Issue(
            category=IssueCategory.BEST_PRACTICES,
            severity=Severity.MINOR,
            title="Unsafe Cross-Origin Link",
            description=(
                f"{unsafe_links} link(s) open in a new tab without "
                f'rel="noopener" or rel="noreferrer"'
            ),
            affected_url=url,
        ))

    return issues


def responsiveness_issues(findings: Dict[str, Any], url: str) -> List[Issue]:
    """Viewport meta tag check."""
    if findings.get('hasViewportMeta'):
        return []
    return [Issue(
        category=IssueCategory.RESPONSIVENESS,
        severity=Severity.MAJOR,
        title="Missing Viewport Meta Tag",
        description="Page has no viewport meta tag, so mobile browsers render it zoomed out",
        affected_url=url,
    )]


def content_issues(
    findings: Dict[str, Any],
    url: str,
    thresholds: Optional[AuditThresholds] = None,
) -> List[Issue]:
    """All issues derived from one run of PAGE_CHECKS_SCRIPT."""
    return (
        accessibility_issues(findings, url, thresholds)
        + seo_issues(findings, url)
        + best_practice_issues(findings, url)
        + responsiveness_issues(findings, url)
    )


def overflow_issue(
    viewport: Viewport,
    scroll_width: int,
    client_width: int,
    url: str,
) -> Optional[Issue]:
    """Horizontal Overflow issue when content is wider than the viewport."""
    if scroll_width <= client_width:
        return None
    return Issue(
        category=IssueCategory.RESPONSIVENESS,
        severity=Severity.MAJOR,
        title="Horizontal Overflow",
        description=(
            f"Content overflows width on {viewport.name} ({viewport.width}px): "
            f"scroll width {scroll_width}px exceeds {client_width}px"
        ),
        affected_url=url,
    )
