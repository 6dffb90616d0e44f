"""
Browser Controller

Owns the Playwright process and the launched browser. Pages are never shared:
each automation flow gets its own BrowserContext through SessionPool.
"""

import logging
import os
from dataclasses import dataclass
from typing import Literal, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

logger = logging.getLogger(__name__)

BrowserType = Literal["chromium", "firefox", "webkit"]

_BROWSER_ALIASES: dict[str, BrowserType] = {
    "chrome": "chromium",
    "chromium": "chromium",
    "firefox": "firefox",
    "webkit": "webkit",
    "safari": "webkit",
}


@dataclass
class BrowserConfig:
    """Browser used as the screen for web-based MES/ERP/OA front ends."""

    browser_type: BrowserType = "chromium"
    headless: bool = False

    # Screenshots sent to the model are taken at this size
    viewport_width: int = 1280
    viewport_height: int = 720

    slow_mo: int = 0

    # Per-operation Playwright timeout in ms
    action_timeout: int = 30000

    # Opened when a session is acquired (e.g. the ERP portal)
    start_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "BrowserConfig":
        """
        Environment variables:
            BROWSER_TYPE: chrome/chromium, firefox, webkit/safari (default: chromium)
            BROWSER_HEADLESS: true/false (default: false)
            BROWSER_VIEWPORT_WIDTH / BROWSER_VIEWPORT_HEIGHT: pixels (default: 1280x720)
            BROWSER_SLOW_MO: ms (default: 0)
            BROWSER_ACTION_TIMEOUT: ms (default: 30000)
            RPA_START_URL: URL opened for every new session
        """
        return cls(
            browser_type=_BROWSER_ALIASES.get(os.getenv("BROWSER_TYPE", "chromium").lower(), "chromium"),
            headless=os.getenv("BROWSER_HEADLESS", "false").lower() in ("true", "1", "yes"),
            viewport_width=int(os.getenv("BROWSER_VIEWPORT_WIDTH", "1280")),
            viewport_height=int(os.getenv("BROWSER_VIEWPORT_HEIGHT", "720")),
            slow_mo=int(os.getenv("BROWSER_SLOW_MO", "0")),
            action_timeout=int(os.getenv("BROWSER_ACTION_TIMEOUT", "30000")),
            start_url=os.getenv("RPA_START_URL") or None,
        )


class BrowserController:
    """
    Lazily launched browser that hands out isolated contexts.

    Usage:
        >>> controller = BrowserController(BrowserConfig(headless=True))
        >>> context = await controller.new_context()
        >>> ...
        >>> await controller.close()
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig.from_env()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def _launch(self) -> Browser:
        if self._browser is None:
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, self.config.browser_type)
            self._browser = await launcher.launch(
                headless=self.config.headless,
                slow_mo=self.config.slow_mo,
            )
            logger.info(
                "Launched %s (headless=%s)", self.config.browser_type, self.config.headless
            )
        return self._browser

    async def new_context(self) -> BrowserContext:
        """Create a context with its own cookies, storage and pages."""
        browser = await self._launch()
        context = await browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
        )
        context.set_default_timeout(self.config.action_timeout)
        context.set_default_navigation_timeout(self.config.action_timeout)
        return context

    async def close(self) -> None:
        """Close the browser and stop Playwright; safe to call when never launched."""
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
