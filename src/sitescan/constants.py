# src/sitescan/constants.py
"""Centralized constants for the site scanner.

This module contains magic numbers and fixed tables that are used across
multiple modules. For user-configurable thresholds, see config.py and
AuditThresholds.
"""

# =============================================================================
# Scoring Constants
# =============================================================================

# Every category starts from this score before penalties
BASE_CATEGORY_SCORE = 100

# Points deducted per issue, keyed by severity value
SEVERITY_PENALTIES = {
    "Critical": 25,
    "Major": 15,
    "Minor": 5,
    "Suggestion": 1,
}

# Category weights for the overall score (must sum to 1.0)
CATEGORY_WEIGHTS = {
    "Performance": 0.25,
    "Responsiveness & Layout": 0.20,
    "Accessibility": 0.15,
    "SEO": 0.15,
    "Errors & Reliability": 0.15,
    "Best Practices": 0.10,
}


# =============================================================================
# Crawler Constants
# =============================================================================

# Default maximum link depth from the seed URL
DEFAULT_MAX_DEPTH = 3

# Default pages to crawl per scan
DEFAULT_PAGE_LIMIT = 20

# Per-navigation timeout while discovering pages (milliseconds)
CRAWL_NAVIGATION_TIMEOUT_MS = 10000


# =============================================================================
# Page Auditor Constants
# =============================================================================

# Upper bound for the audit navigation ("network settled") in milliseconds
AUDIT_NAVIGATION_TIMEOUT_MS = 30000

# Fixed delay after a viewport resize before measuring layout (milliseconds)
LAYOUT_SETTLE_DELAY_MS = 500

# Interval between layout stability polls (milliseconds)
LAYOUT_POLL_INTERVAL_MS = 100

# Maximum characters kept from console/exception messages
MAX_MESSAGE_LENGTH = 500

# Maximum sample URLs quoted in an issue description
MAX_EVIDENCE_SAMPLES = 5

# Request failures that indicate an abort rather than a broken resource.
# Chromium reports net::ERR_ABORTED, Firefox NS_BINDING_ABORTED and
# WebKit "cancelled".
ABORTED_REQUEST_ERRORS = (
    "net::ERR_ABORTED",
    "NS_BINDING_ABORTED",
    "cancelled",
    "Load request cancelled",
)

# Known analytics/advertising hosts whose failed requests are not reported.
# Matched against the request host and its parent domains.
THIRD_PARTY_DENYLIST = frozenset({
    "google-analytics.com",
    "googletagmanager.com",
    "googleadservices.com",
    "googlesyndication.com",
    "doubleclick.net",
    "facebook.net",
    "connect.facebook.net",
    "analytics.tiktok.com",
    "hotjar.com",
    "clarity.ms",
    "segment.io",
    "mixpanel.com",
    "adservice.google.com",
    "bat.bing.com",
    "ads.linkedin.com",
    "snap.licdn.com",
})


# =============================================================================
# Progress Milestones (percent)
# =============================================================================

PROGRESS_CRAWL_START = 5
PROGRESS_DISCOVERY_START = 10
PROGRESS_DISCOVERY_COMPLETE = 20
PROGRESS_AUDIT_SPAN = 70
PROGRESS_AUDIT_MAX = 90
PROGRESS_COMPLETE = 100


# =============================================================================
# Queue Manager Constants
# =============================================================================

# Jobs allowed in SCANNING state at the same time
DEFAULT_MAX_CONCURRENT_SCANS = 3

# Completed job durations kept for wait-time estimation
MAX_DURATION_SAMPLES = 10

# Assumed job duration before any job has completed (seconds)
DEFAULT_SCAN_DURATION_SECONDS = 60.0

# Message stored on a job whose pipeline raised
GENERIC_FAILURE_MESSAGE = "Scan failed due to server error."


# =============================================================================
# Viewport Presets
# =============================================================================

VIEWPORT_PRESETS = {
    "mobile": {"name": "Mobile", "width": 390, "height": 844},
    "mobile-small": {"name": "Mobile Small", "width": 375, "height": 667},
    "tablet": {"name": "Tablet", "width": 768, "height": 1024},
    "desktop": {"name": "Desktop", "width": 1440, "height": 900},
    "desktop-wide": {"name": "Desktop Wide", "width": 1920, "height": 1080},
}

# Presets used when a submission does not select any
DEFAULT_VIEWPORT_IDS = ("mobile", "tablet", "desktop")
