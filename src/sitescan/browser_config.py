"""
Browser configuration for Playwright-driven scanning.

This module provides a validated Pydantic configuration model for all
browser-related settings used by the crawler and the page auditor.
"""
from typing import List, Literal

from pydantic import BaseModel, Field

from sitescan.constants import (
    AUDIT_NAVIGATION_TIMEOUT_MS,
    CRAWL_NAVIGATION_TIMEOUT_MS,
    LAYOUT_SETTLE_DELAY_MS,
)


# Flags that keep headless Chromium stable inside containers
CONTAINER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserConfig(BaseModel):
    """
    Configuration for the Playwright browser session.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for scanning"
    )

    timeout: int = Field(
        default=AUDIT_NAVIGATION_TIMEOUT_MS,
        description="Audit navigation timeout in milliseconds",
        ge=1000,
        le=300000
    )

    crawl_timeout: int = Field(
        default=CRAWL_NAVIGATION_TIMEOUT_MS,
        description="Per-navigation timeout while discovering pages, in milliseconds",
        ge=1000,
        le=300000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="networkidle",
        description="When to consider an audit navigation complete"
    )

    crawl_wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded",
        description="When to consider a discovery navigation complete"
    )

    layout_settle_ms: int = Field(
        default=LAYOUT_SETTLE_DELAY_MS,
        description="Delay after a viewport resize before measuring layout",
        ge=0,
        le=10000
    )

    poll_layout: bool = Field(
        default=True,
        description="Poll for a stable layout instead of always sleeping the full settle delay"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: list(CONTAINER_LAUNCH_ARGS),
        description="Additional browser launch arguments"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    def get_launch_options(self) -> dict:
        """Get options for browser_type.launch()."""
        options = {"headless": self.headless}
        if self.launch_args and self.browser_type == "chromium":
            options["args"] = list(self.launch_args)
        return options


# --- Pre-configured Instances for Common Use Cases ---

DEFAULT_CONFIG = BrowserConfig()
"""
Default configuration: headless Chromium with network-settled audits.
"""

DEBUG_CONFIG = BrowserConfig(
    headless=False,
    poll_layout=False,
    timeout=60000,
)
"""
Debug configuration with a visible browser and the fixed layout settle delay.

Best for watching an audit step through its viewports.
"""
