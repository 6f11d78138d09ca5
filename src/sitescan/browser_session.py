"""
Playwright browser lifecycle for one scan.

A BrowserSession owns a single launched browser and hands out isolated
contexts, so cookies and storage never leak between audited pages:

    async with BrowserSession(config) as session:
        context = await session.new_context(viewport)
"""
import logging
from typing import Optional

from playwright.async_api import async_playwright

from sitescan.browser_config import BrowserConfig
from sitescan.models import Viewport

logger = logging.getLogger(__name__)


class BrowserSession:
    """Async context manager around a launched Playwright browser."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None

    @property
    def config(self) -> BrowserConfig:
        return self._config

    async def __aenter__(self) -> "BrowserSession":
        """Enter async context manager, launching browser."""
        logger.info(
            f"Launching {self._config.browser_type} browser (headless={self._config.headless})"
        )

        self._playwright = await async_playwright().start()
        browser_launcher = getattr(self._playwright, self._config.browser_type)

        try:
            self._browser = await browser_launcher.launch(**self._config.get_launch_options())
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

        logger.debug("Browser launched successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager, closing browser."""
        if self._browser:
            logger.debug("Closing browser")
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def new_context(self, viewport: Optional[Viewport] = None):
        """
        Create a new, isolated browser context.

        Args:
            viewport: Initial viewport size; Playwright's default when None

        Raises:
            RuntimeError: If the browser is not running (not in context manager)
        """
        if not self._browser:
            raise RuntimeError(
                "Browser is not running. Use BrowserSession as an async context manager: "
                "async with BrowserSession(config) as session:"
            )

        options = {"java_script_enabled": True}
        if viewport is not None:
            options["viewport"] = {"width": viewport.width, "height": viewport.height}

        return await self._browser.new_context(**options)
