"""
Browser Sessions

BrowserSession drives one isolated browser context and implements the
ScreenDriver contract on top of Playwright's mouse and keyboard. SessionPool
lends sessions to concurrent flows: each acquire() provisions a fresh context,
at most max_sessions exist at once, and the context is closed when the flow
leaves the block, whether it finished or failed.
"""

import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from playwright.async_api import BrowserContext, Page
from pydantic import BaseModel

from ..actions import MouseButton, Region, ScrollDirection
from ..errors import StaleElementIndex
from .controller import BrowserController
from .driver import ScreenDriver

logger = logging.getLogger(__name__)


# Collects visible interactive elements and numbers them in document order.
EXTRACT_ELEMENTS_SCRIPT = """
() => {
  const selectors = [
    'a[href]', 'button', 'input', 'select', 'textarea',
    '[role="button"]', '[role="link"]', '[role="menuitem"]', '[role="tab"]',
    '[onclick]', '[tabindex]'
  ];
  const elements = [];
  let index = 0;
  document.querySelectorAll(selectors.join(',')).forEach(el => {
    const rect = el.getBoundingClientRect();
    const visible = rect.width > 0 && rect.height > 0 &&
      rect.top < window.innerHeight && rect.bottom > 0 &&
      rect.left < window.innerWidth && rect.right > 0;
    if (!visible) return;
    elements.push({
      index: index++,
      tag: el.tagName.toLowerCase(),
      type: el.getAttribute('type'),
      text: (el.textContent || '').trim().slice(0, 100),
      placeholder: el.getAttribute('placeholder'),
      value: el.value === undefined ? null : String(el.value),
      href: el.getAttribute('href'),
      ariaLabel: el.getAttribute('aria-label'),
      bounds: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
      enabled: !el.disabled
    });
  });
  return elements;
}
"""

_SCROLL_VECTORS = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}


class InteractiveElement(BaseModel):
    """Element found by the most recent extraction pass."""

    index: int
    tag: str
    type: Optional[str] = None
    text: str = ""
    placeholder: Optional[str] = None
    value: Optional[str] = None
    href: Optional[str] = None
    aria_label: Optional[str] = None
    bounds: dict[str, float]
    enabled: bool = True

    @classmethod
    def from_script(cls, raw: dict[str, Any]) -> "InteractiveElement":
        data = dict(raw)
        data["aria_label"] = data.pop("ariaLabel", None)
        return cls.model_validate(data)


class TabInfo(BaseModel):
    index: int
    url: str
    title: str
    active: bool


class BrowserState(BaseModel):
    url: str
    title: str
    tabs: list[TabInfo]
    interactive_elements: list[InteractiveElement]
    screenshot: Optional[str] = None


def _to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class BrowserSession(ScreenDriver):
    """
    ScreenDriver backed by one Playwright page.

    Element indices from get_state() are only valid until the next
    get_state() call.
    """

    def __init__(self, context: BrowserContext, page: Page):
        self.context = context
        self.page = page
        self._elements: dict[int, InteractiveElement] = {}
        self._extraction = 0

    async def goto(self, url: str) -> None:
        await self.page.goto(url)

    async def capture_screen(self, region: Optional[Region] = None) -> str:
        clip = None
        if region is not None:
            clip = {
                "x": region.x,
                "y": region.y,
                "width": region.width,
                "height": region.height,
            }
        png = await self.page.screenshot(clip=clip)
        return _to_data_url(png)

    async def click(self, x: int, y: int, button: MouseButton = "left") -> None:
        await self.page.mouse.click(x, y, button=button)

    async def double_click(self, x: int, y: int) -> None:
        await self.page.mouse.dblclick(x, y)

    async def type_text(self, text: str) -> None:
        await self.page.keyboard.type(text)

    async def press_key(self, key: str, modifiers: tuple[str, ...] = ()) -> None:
        await self.page.keyboard.press("+".join((*modifiers, key)))

    async def scroll(self, x: int, y: int, direction: ScrollDirection, amount: int) -> None:
        dx, dy = _SCROLL_VECTORS[direction]
        await self.page.mouse.move(x, y)
        await self.page.mouse.wheel(dx * amount, dy * amount)

    async def move(self, x: int, y: int) -> None:
        await self.page.mouse.move(x, y)

    async def drag(self, start_x: int, start_y: int, end_x: int, end_y: int) -> None:
        mouse = self.page.mouse
        await mouse.move(start_x, start_y)
        await mouse.down()
        await mouse.move(end_x, end_y, steps=10)
        await mouse.up()

    async def find_element(self, description: str) -> Optional[dict[str, Any]]:
        candidates = (
            self.page.get_by_label(description),
            self.page.get_by_placeholder(description),
            self.page.get_by_text(description),
        )
        for locator in candidates:
            if await locator.count() == 0:
                continue
            first = locator.first
            box = await first.bounding_box()
            if box is None:
                continue
            return {"description": description, "bounds": box}
        return None

    async def get_state(self, include_screenshot: bool = False) -> BrowserState:
        """
        Snapshot url, title, tabs and interactive elements.

        Starts a new extraction pass; indices from earlier passes become invalid.
        """
        raw_elements = await self.page.evaluate(EXTRACT_ELEMENTS_SCRIPT)
        elements = [InteractiveElement.from_script(raw) for raw in raw_elements]

        self._extraction += 1
        self._elements = {element.index: element for element in elements}

        tabs = []
        for index, page in enumerate(self.context.pages):
            tabs.append(TabInfo(
                index=index,
                url=page.url,
                title=await page.title(),
                active=page is self.page,
            ))

        return BrowserState(
            url=self.page.url,
            title=await self.page.title(),
            tabs=tabs,
            interactive_elements=elements,
            screenshot=await self.capture_screen() if include_screenshot else None,
        )

    async def click_element(self, index: int) -> InteractiveElement:
        """Click the centre of an element from the latest extraction pass."""
        element = self._elements.get(index)
        if element is None:
            raise StaleElementIndex(
                f"Element index {index} is not part of extraction pass {self._extraction}"
            )
        bounds = element.bounds
        await self.click(
            int(bounds["x"] + bounds["width"] / 2),
            int(bounds["y"] + bounds["height"] / 2),
        )
        return element


class SessionPool:
    """
    Hands out isolated BrowserSessions to concurrent flows.

    Usage:
        >>> pool = SessionPool(controller, max_sessions=2)
        >>> async with pool.acquire() as session:
        ...     screenshot = await session.capture_screen()
    """

    def __init__(self, controller: BrowserController, max_sessions: int = 2):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.controller = controller
        self.max_sessions = max_sessions
        self._semaphore = asyncio.Semaphore(max_sessions)
        self._active = 0

    @property
    def active_sessions(self) -> int:
        return self._active

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[BrowserSession]:
        async with self._semaphore:
            context = await self.controller.new_context()
            self._active += 1
            try:
                page = await context.new_page()
                session = BrowserSession(context, page)
                if self.controller.config.start_url:
                    await session.goto(self.controller.config.start_url)
                logger.debug("Browser session acquired (%d active)", self._active)
                yield session
            finally:
                self._active -= 1
                await context.close()
                logger.debug("Browser session released (%d active)", self._active)

    async def close(self) -> None:
        await self.controller.close()
