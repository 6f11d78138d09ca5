"""URL helpers shared by the crawler and the page auditor."""

from typing import Iterable, Optional
from urllib.parse import urlparse, urlsplit, urlunsplit


def canonicalize_url(url: str) -> str:
    """Canonical form of a URL.

    The fragment is removed, the scheme and host are lower-cased and an empty
    path becomes ``/``, matching how browsers serialize ``a.href``. Query
    strings and trailing slashes on non-empty paths are kept as-is.
    """
    parts = urlsplit(url)
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or "/",
        parts.query,
        "",
    ))


def get_hostname(url: str) -> Optional[str]:
    """Lower-cased hostname of a URL, or None when it has none."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_http_url(url: str) -> bool:
    """True for absolute http(s) URLs."""
    return urlparse(url).scheme in ("http", "https")


def host_matches(hostname: Optional[str], domains: Iterable[str]) -> bool:
    """True when hostname equals one of the domains or is a subdomain of one."""
    if not hostname:
        return False
    for domain in domains:
        if hostname == domain or hostname.endswith("." + domain):
            return True
    return False
