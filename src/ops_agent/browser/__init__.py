"""
Browser Automation Module

Playwright-backed GUI driver for the RPA channel:
- BrowserController: owns the Playwright process and browser
- SessionPool / BrowserSession: per-flow isolated sessions implementing ScreenDriver
"""

from .controller import BrowserConfig, BrowserController
from .driver import DriverProvider, ScreenDriver
from .session import (
    BrowserSession,
    BrowserState,
    InteractiveElement,
    SessionPool,
    TabInfo,
)

__all__ = [
    "BrowserConfig",
    "BrowserController",
    "BrowserSession",
    "BrowserState",
    "DriverProvider",
    "InteractiveElement",
    "ScreenDriver",
    "SessionPool",
    "TabInfo",
]
