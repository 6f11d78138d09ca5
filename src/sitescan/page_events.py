"""Translation of browser page events into candidate issues.

Listeners never touch shared state: each one turns a Playwright event into
at most one Issue and puts it on a per-page queue. The auditor drains the
queue once the page lifecycle has ended.
"""

import asyncio
import logging
from typing import List, Optional

from sitescan.constants import (
    ABORTED_REQUEST_ERRORS,
    MAX_MESSAGE_LENGTH,
    THIRD_PARTY_DENYLIST,
)
from sitescan.models import Issue, IssueCategory, Severity
from sitescan.url_utils import get_hostname, host_matches

logger = logging.getLogger(__name__)


def _truncate(text: Optional[str]) -> str:
    text = text or ""
    return text[:MAX_MESSAGE_LENGTH]


def console_issue(message_type: str, text: str, url: str) -> Optional[Issue]:
    """Issue for a console message, or None for message types we ignore."""
    if message_type == "error":
        return Issue(
            category=IssueCategory.ERRORS,
            severity=Severity.MAJOR,
            title="Console Error",
            description=_truncate(text),
            affected_url=url,
        )
    if message_type == "warning":
        return Issue(
            category=IssueCategory.BEST_PRACTICES,
            severity=Severity.SUGGESTION,
            title="Console Warning",
            description=_truncate(text),
            affected_url=url,
        )
    return None


def page_error_issue(message: str, url: str) -> Issue:
    """Issue for an uncaught exception thrown by page script."""
    return Issue(
        category=IssueCategory.ERRORS,
        severity=Severity.CRITICAL,
        title="Uncaught Exception",
        description=_truncate(message),
        affected_url=url,
    )


def response_issue(
    status: int,
    response_url: str,
    url: str,
    referrer: Optional[str] = None,
    is_main_document: bool = False,
) -> Optional[Issue]:
    """Issue for an HTTP response, or None when the status is acceptable.

    ``is_main_document`` marks the page's own navigation response, which may
    come from a different URL than ``url`` after a redirect. Its 404 is
    reported once, as "Page Not Found"; it never also produces a "Broken
    Resource" issue. 4xx statuses other than 404 are not reported.
    """
    if status < 400:
        return None

    if status == 404 and is_main_document:
        description = f"{url} returned 404 Not Found"
        if referrer:
            description += f" (linked from {referrer})"
        return Issue(
            category=IssueCategory.ERRORS,
            severity=Severity.CRITICAL,
            title="Page Not Found",
            description=description,
            affected_url=url,
        )
    if status >= 500:
        return Issue(
            category=IssueCategory.ERRORS,
            severity=Severity.MAJOR,
            title="Server Error",
            description=f"{response_url} returned HTTP {status}",
            affected_url=url,
        )
    if status == 404:
        return Issue(
            category=IssueCategory.ERRORS,
            severity=Severity.MINOR,
            title="Broken Resource",
            description=f"{response_url} returned 404 Not Found",
            affected_url=url,
        )
    return None


def is_aborted_failure(failure: Optional[str]) -> bool:
    """True when a request failure is an abort rather than a network error."""
    if not failure:
        return False
    return any(marker in failure for marker in ABORTED_REQUEST_ERRORS)


def request_failed_issue(request_url: str, failure: Optional[str], url: str) -> Optional[Issue]:
    """Issue for a failed request, or None for denylisted hosts and aborts."""
    if host_matches(get_hostname(request_url), THIRD_PARTY_DENYLIST):
        return None
    if is_aborted_failure(failure):
        return None

    description = f"{request_url} failed"
    if failure:
        description += f": {failure}"
    return Issue(
        category=IssueCategory.ERRORS,
        severity=Severity.MINOR,
        title="Failed Request",
        description=description,
        affected_url=url,
    )


class PageEventCollector:
    """Collects candidate issues from one page's event stream.

    Usage:
        collector = PageEventCollector(url, referrer)
        collector.attach(page)
        ...  # navigate and evaluate
        collector.detach(page)
        issues = collector.drain()
    """

    def __init__(self, url: str, referrer: Optional[str] = None):
        self.url = url
        self.referrer = referrer
        self._channel: asyncio.Queue = asyncio.Queue()
        self._main_frame = None
        self._handlers = {
            "console": self.on_console,
            "pageerror": self.on_page_error,
            "response": self.on_response,
            "requestfailed": self.on_request_failed,
        }

    def _emit(self, issue: Optional[Issue]) -> None:
        if issue is not None:
            self._channel.put_nowait(issue)

    def on_console(self, msg) -> None:
        self._emit(console_issue(msg.type, msg.text, self.url))

    def on_page_error(self, error) -> None:
        message = getattr(error, "message", None) or str(error)
        self._emit(page_error_issue(message, self.url))

    def is_main_document(self, response) -> bool:
        """True for the navigation response of the page's main frame."""
        if self._main_frame is None:
            return False
        return (
            response.request.is_navigation_request()
            and response.frame == self._main_frame
        )

    def on_response(self, response) -> None:
        self._emit(response_issue(
            response.status,
            response.url,
            self.url,
            self.referrer,
            is_main_document=self.is_main_document(response),
        ))

    def on_request_failed(self, request) -> None:
        self._emit(request_failed_issue(request.url, request.failure, self.url))

    def attach(self, page) -> None:
        """Register all listeners on the page. Call before navigating."""
        self._main_frame = page.main_frame
        for event, handler in self._handlers.items():
            page.on(event, handler)

    def detach(self, page) -> None:
        """Remove all listeners from the page."""
        for event, handler in self._handlers.items():
            page.remove_listener(event, handler)

    def drain(self) -> List[Issue]:
        """Return every queued issue in arrival order and empty the channel."""
        issues: List[Issue] = []
        while not self._channel.empty():
            issues.append(self._channel.get_nowait())
        return issues
