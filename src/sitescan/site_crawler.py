"""Site crawler with breadth-first search for page discovery."""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from playwright.async_api import Error as PlaywrightError

from sitescan.browser_config import BrowserConfig
from sitescan.browser_session import BrowserSession
from sitescan.constants import DEFAULT_MAX_DEPTH, DEFAULT_PAGE_LIMIT
from sitescan.models import CrawledPage
from sitescan.url_utils import canonicalize_url, get_hostname, is_http_url

logger = logging.getLogger(__name__)

# Asset links that are never pages worth auditing
SKIP_EXTENSIONS = frozenset({
    '.pdf', '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    '.zip', '.tar', '.gz', '.mp4', '.mp3', '.avi', '.mov',
    '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
    '.css', '.js', '.xml', '.json', '.ico', '.woff', '.woff2', '.ttf'
})


class NavigationError(Exception):
    """Raised by a LinkFetcher when a page could not be loaded."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"{url}: {message}")


class LinkFetcher(ABC):
    """Loads one page and returns the absolute hrefs of its anchors."""

    @abstractmethod
    async def fetch_links(self, url: str) -> List[str]:
        """Navigate to url and return its links.

        Raises:
            NavigationError: If the page could not be loaded
        """

    async def close(self) -> None:
        """Release any resources held by the fetcher."""


class BrowserLinkFetcher(LinkFetcher):
    """LinkFetcher backed by a single Playwright page."""

    def __init__(self, session: BrowserSession, config: Optional[BrowserConfig] = None):
        self._session = session
        self._config = config or session.config
        self._context = None
        self._page = None

    async def _get_page(self):
        if self._page is None:
            self._context = await self._session.new_context()
            self._page = await self._context.new_page()
        return self._page

    async def fetch_links(self, url: str) -> List[str]:
        page = await self._get_page()
        try:
            await page.goto(
                url,
                wait_until=self._config.crawl_wait_until,
                timeout=self._config.crawl_timeout,
            )
            return await page.eval_on_selector_all(
                "a[href]", "anchors => anchors.map(a => a.href)"
            )
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
            self._context = None
            self._page = None


class SiteCrawler:
    """Discovers same-host pages from a seed URL using breadth-first search (BFS).

    Processes pages level by level:
    - depth 0: the seed page
    - depth 1: all pages linked from the seed
    - depth 2: all pages linked from depth 1
    - etc.

    A URL is marked visited before it is fetched, so cyclic link graphs never
    re-enqueue it. Pages that fail to load stay in the output; the page
    auditor reports the failure later. Nothing is retried.
    """

    def __init__(
        self,
        fetcher: LinkFetcher,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_pages: Optional[int] = DEFAULT_PAGE_LIMIT,
    ):
        """Initialize the site crawler.

        Args:
            fetcher: LinkFetcher used to load pages and read their links
            max_depth: Deepest link level to include (seed is depth 0)
            max_pages: Maximum pages to return; None or negative means unbounded
        """
        self.fetcher = fetcher
        self.max_depth = max_depth
        self.max_pages = max_pages if max_pages is not None and max_pages >= 0 else None

        self.visited: Dict[str, Optional[str]] = {}
        self._depths: Dict[str, int] = {}

    def _limit_reached(self) -> bool:
        return self.max_pages is not None and len(self.visited) >= self.max_pages

    async def crawl(self, seed_url: str) -> List[CrawledPage]:
        """Crawl from seed_url and return discovered pages in discovery order.

        Args:
            seed_url: The starting URL to crawl from

        Returns:
            List of CrawledPage, seed first
        """
        seed_url = canonicalize_url(seed_url)
        hostname = get_hostname(seed_url)

        self.visited = {}
        self._depths = {}
        queue: Deque[Tuple[str, int, Optional[str]]] = deque([(seed_url, 0, None)])
        enqueued: Set[str] = {seed_url}

        logger.info(
            f"Starting site crawl from: {seed_url} "
            f"(max depth {self.max_depth}, max pages {self.max_pages or 'unbounded'})"
        )

        while queue and not self._limit_reached():
            url, depth, referrer = queue.popleft()

            if url in self.visited:
                continue
            if depth > self.max_depth:
                continue

            self.visited[url] = referrer
            self._depths[url] = depth
            logger.debug(f"[L{depth}] Visiting ({len(self.visited)}): {url}")

            # Pages at the depth limit are included but never expanded
            if depth >= self.max_depth:
                continue

            try:
                links = await self.fetcher.fetch_links(url)
            except NavigationError as e:
                logger.warning(f"Failed to crawl {url}: {e.message}")
                continue

            new_links = self._extract_internal_links(links, hostname)
            for link in new_links:
                if link not in enqueued:
                    enqueued.add(link)
                    queue.append((link, depth + 1, url))

            if new_links:
                logger.debug(f"  → Found {len(new_links)} internal links for L{depth + 1}")

        logger.info(f"Crawl complete! Discovered {len(self.visited)} pages")

        return [
            CrawledPage(url=url, referrer=referrer, depth=self._depths[url])
            for url, referrer in self.visited.items()
        ]

    def _extract_internal_links(self, links: List[str], hostname: Optional[str]) -> List[str]:
        """Canonicalize links and keep the unvisited ones on the seed's host.

        Args:
            links: Absolute hrefs found on the page
            hostname: The seed's hostname to match against

        Returns:
            Canonical internal links in page order, without duplicates
        """
        internal_links: List[str] = []
        seen: Set[str] = set()

        for link in links:
            try:
                if not is_http_url(link):
                    continue
                if get_hostname(link) != hostname:
                    continue

                canonical = canonicalize_url(link)
                if self._should_skip_url(canonical):
                    continue
                if canonical in self.visited or canonical in seen:
                    continue

                seen.add(canonical)
                internal_links.append(canonical)
            except ValueError:
                # Skip malformed URLs
                continue

        return internal_links

    def _should_skip_url(self, url: str) -> bool:
        """Check if URL points at a static asset rather than a page.

        Args:
            url: Canonical URL

        Returns:
            True if URL should be skipped
        """
        path = url.split('?', 1)[0].lower()
        return any(path.endswith(ext) for ext in SKIP_EXTENSIONS)
