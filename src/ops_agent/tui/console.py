"""
Rich console for the operations agent CLI.

Every piece of CLI output is a titled panel whose border colour says what it
is: the classifier's ANALYSIS, the generated PLAN, a GUI ACTION, the final
RESULT or an ERROR. Colours can be changed through COLOR_* variables.
"""

import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Literal, Optional

from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.theme import Theme

BlockType = Literal["analysis", "plan", "action", "result", "error"]

_DEFAULT_COLORS: dict[str, str] = {
    "analysis": "blue",
    "plan": "cyan",
    "action": "green",
    "result": "yellow",
    "error": "red",
}


@dataclass
class TUIConfig:
    colors: dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_COLORS))
    show_timestamps: bool = True

    @classmethod
    def from_env(cls) -> "TUIConfig":
        """COLOR_ANALYSIS, COLOR_PLAN, COLOR_ACTION, COLOR_RESULT, COLOR_ERROR, SHOW_TIMESTAMPS."""
        return cls(
            colors={
                block: os.getenv(f"COLOR_{block.upper()}", default)
                for block, default in _DEFAULT_COLORS.items()
            },
            show_timestamps=os.getenv("SHOW_TIMESTAMPS", "true").lower() == "true",
        )


class AgentConsole:
    """Themed wrapper around a rich Console."""

    def __init__(self, config: Optional[TUIConfig] = None, console: Optional[Console] = None):
        """
        Args:
            config: Colours and timestamps (uses env if None)
            console: Underlying rich Console, e.g. one recording to a buffer in tests
        """
        self.config = config or TUIConfig.from_env()
        self.console = console or Console(
            theme=Theme({block: f"bold {color}" for block, color in self.config.colors.items()})
        )

    def print_block(self, content: RenderableType, block_type: BlockType, title: Optional[str] = None) -> None:
        title = title or f"[{block_type.upper()}]"
        if self.config.show_timestamps:
            title = f"{datetime.now():%H:%M:%S} {title}"
        self.console.print(Panel(
            content,
            title=title,
            title_align="left",
            border_style=self.config.colors[block_type],
            padding=(0, 1),
        ))

    def print(self, *args, **kwargs) -> None:
        self.console.print(*args, **kwargs)


_console: Optional[AgentConsole] = None


def get_console() -> AgentConsole:
    """Process-wide console, created on first use."""
    global _console
    if _console is None:
        _console = AgentConsole()
    return _console


@contextmanager
def stage_spinner(message: str, *, console: Optional[AgentConsole] = None) -> Iterator[None]:
    """
    Spinner shown while a non-interactive stage runs.

    Usage:
        with stage_spinner("Classifying and planning..."):
            result = await engine.handle_problem(report, dry_run=True)
    """
    console = console or get_console()
    with console.console.status(f"[{console.config.colors['action']}]{message}[/]", spinner="dots"):
        yield
