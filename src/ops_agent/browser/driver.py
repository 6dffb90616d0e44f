"""
Screen Driver Contract

What the perception-action loop needs from a GUI backend: capture the
current screen and inject input. Drivers are handed out by a DriverProvider
whose acquire() is an async context manager, so a flow owns its driver for
the whole loop and releases it on every exit path.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional, Protocol

from ..actions import MouseButton, Region, ScrollDirection


class ScreenDriver(ABC):
    """Screen capture and input injection primitives."""

    @abstractmethod
    async def capture_screen(self, region: Optional[Region] = None) -> str:
        """Return the current screen as an image data URL."""

    @abstractmethod
    async def click(self, x: int, y: int, button: MouseButton = "left") -> None: ...

    @abstractmethod
    async def double_click(self, x: int, y: int) -> None: ...

    @abstractmethod
    async def type_text(self, text: str) -> None: ...

    @abstractmethod
    async def press_key(self, key: str, modifiers: tuple[str, ...] = ()) -> None: ...

    @abstractmethod
    async def scroll(self, x: int, y: int, direction: ScrollDirection, amount: int) -> None: ...

    @abstractmethod
    async def move(self, x: int, y: int) -> None: ...

    @abstractmethod
    async def drag(self, start_x: int, start_y: int, end_x: int, end_y: int) -> None: ...

    @abstractmethod
    async def find_element(self, description: str) -> Optional[dict[str, Any]]:
        """Locate an element by description; None if nothing matches."""


class DriverProvider(Protocol):
    """Anything that can lend a ScreenDriver for the duration of a flow."""

    def acquire(self) -> AbstractAsyncContextManager[ScreenDriver]: ...
