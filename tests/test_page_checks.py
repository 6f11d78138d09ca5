"""Tests for in-page content rules."""

import pytest

from sitescan.config import AuditThresholds
from sitescan.models import IssueCategory, Severity, Viewport
from sitescan.page_checks import (
    accessibility_issues,
    best_practice_issues,
    content_issues,
    find_heading_jump,
    overflow_issue,
    responsiveness_issues,
    seo_issues,
)

URL = "https://example.com/"


@pytest.fixture
def clean_findings():
    """Findings for a page that passes every check."""
    return {
        "title": "Example",
        "hasMetaDescription": True,
        "h1Count": 1,
        "hasCanonical": True,
        "imageCount": 3,
        "imagesMissingAlt": 0,
        "headingLevels": [1, 2, 3, 2],
        "isHttps": True,
        "insecureResources": [],
        "unsafeBlankLinks": 0,
        "hasViewportMeta": True,
    }


def titles(issues):
    return [issue.title for issue in issues]


class TestContentIssues:

    def test_clean_page_has_no_issues(self, clean_findings):
        assert content_issues(clean_findings, URL) == []

    def test_every_issue_attributed_to_page(self, clean_findings):
        clean_findings.update(title="", h1Count=0, imagesMissingAlt=2, hasViewportMeta=False)

        issues = content_issues(clean_findings, URL)

        assert issues
        assert all(issue.affected_url == URL for issue in issues)


class TestAccessibilityIssues:

    def test_missing_alt(self, clean_findings):
        clean_findings["imagesMissingAlt"] = 2

        issues = accessibility_issues(clean_findings, URL)

        assert titles(issues) == ["Images Missing Alt Text"]
        assert issues[0].severity == Severity.MAJOR
        assert "2 image(s)" in issues[0].description

    def test_skipped_heading_level_reported_once(self, clean_findings):
        clean_findings["headingLevels"] = [1, 3, 1, 4]

        issues = accessibility_issues(clean_findings, URL)

        assert titles(issues) == ["Skipped Heading Level"]
        assert "H1 to H3" in issues[0].description

    def test_heading_jump_threshold(self, clean_findings):
        clean_findings["headingLevels"] = [1, 3]
        thresholds = AuditThresholds(max_heading_jump=2)

        assert accessibility_issues(clean_findings, URL, thresholds) == []

    @pytest.mark.parametrize("levels,expected", [
        ([], None),
        ([2], None),
        ([1, 2, 3, 4], None),
        ([3, 1, 2], None),
        ([1, 2, 4], (2, 4)),
    ])
    def test_find_heading_jump(self, levels, expected):
        assert find_heading_jump(levels) == expected


class TestSeoIssues:

    def test_missing_everything(self, clean_findings):
        clean_findings.update(title="  ", hasMetaDescription=False, h1Count=0, hasCanonical=False)

        issues = seo_issues(clean_findings, URL)

        assert titles(issues) == [
            "Missing Title",
            "Missing Meta Description",
            "Missing H1",
            "Missing Canonical Link",
        ]
        assert all(issue.category == IssueCategory.SEO for issue in issues)

    def test_multiple_h1(self, clean_findings):
        clean_findings["h1Count"] = 3

        issues = seo_issues(clean_findings, URL)

        assert titles(issues) == ["Multiple H1 Tags"]
        assert issues[0].severity == Severity.MINOR


class TestBestPracticeIssues:

    def test_mixed_content_quotes_samples(self, clean_findings):
        clean_findings["insecureResources"] = [f"http://cdn.example.com/{i}.js" for i in range(8)]

        issues = best_practice_issues(clean_findings, URL)

        assert titles(issues) == ["Mixed Content"]
        assert "8 resource(s)" in issues[0].description
        assert "http://cdn.example.com/4.js" in issues[0].description
        assert "http://cdn.example.com/5.js" not in issues[0].description

    def test_mixed_content_ignored_on_http_page(self, clean_findings):
        clean_findings.update(isHttps=False, insecureResources=["http://cdn.example.com/a.js"])

        assert best_practice_issues(clean_findings, URL) == []

    def test_unsafe_blank_links(self, clean_findings):
        clean_findings["unsafeBlankLinks"] = 2

        assert titles(best_practice_issues(clean_findings, URL)) == ["Unsafe Cross-Origin Link"]


class TestLayoutIssues:

    def test_missing_viewport_meta(self, clean_findings):
        clean_findings["hasViewportMeta"] = False

        issues = responsiveness_issues(clean_findings, URL)

        assert titles(issues) == ["Missing Viewport Meta Tag"]
        assert issues[0].category == IssueCategory.RESPONSIVENESS

    def test_overflow(self):
        issue = overflow_issue(Viewport("Mobile", 390, 844), 520, 390, URL)

        assert issue.title == "Horizontal Overflow"
        assert issue.severity == Severity.MAJOR
        assert "Mobile" in issue.description
        assert "390px" in issue.description

    def test_no_overflow(self):
        assert overflow_issue(Viewport("Desktop", 1440, 900), 1440, 1440, URL) is None
