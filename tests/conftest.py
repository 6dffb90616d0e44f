"""
Shared test doubles.

ScriptedLLM replays canned completions in order and records every request.
FakeDriver records injected input; FakeDriverProvider lends it and counts
acquire/release so tests can check the driver is returned on every path.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

import pytest

from ops_agent.browser.driver import ScreenDriver
from ops_agent.config import EngineConfig
from ops_agent.llm import LLMConfig, LLMProvider, LLMResponse


Scripted = Union[str, dict, list, None, Exception]


class ScriptedLLM(LLMProvider):
    """LLM provider that answers from a queue of canned contents."""

    def __init__(self, responses: Optional[list[Scripted]] = None, default: Scripted = None):
        super().__init__(LLMConfig(api_key="test"))
        self.responses = list(responses or [])
        self.default = default
        self.calls: list[dict[str, Any]] = []

    def push(self, *responses: Scripted) -> None:
        self.responses.extend(responses)

    async def initialize(self) -> None:
        pass

    async def complete(self, messages, role=None, response_schema=None, **kwargs) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "role": role,
            "response_schema": response_schema,
        })
        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, Exception):
            raise item
        if isinstance(item, (dict, list)):
            item = json.dumps(item)
        return LLMResponse(content=item, model="scripted")


class FakeDriver(ScreenDriver):
    """Screen driver that records every injected input."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.events: list[tuple] = []
        self.captures = 0

    def _record(self, name: str, *args) -> None:
        if name == self.fail_on:
            raise RuntimeError(f"{name} injection failed")
        self.events.append((name, *args))

    async def capture_screen(self, region=None) -> str:
        if self.fail_on == "capture":
            raise RuntimeError("capture failed")
        self.captures += 1
        return f"data:image/png;base64,shot{self.captures}"

    async def click(self, x, y, button="left") -> None:
        self._record("click", x, y, button)

    async def double_click(self, x, y) -> None:
        self._record("double_click", x, y)

    async def type_text(self, text) -> None:
        self._record("type", text)

    async def press_key(self, key, modifiers=()) -> None:
        self._record("key", key, tuple(modifiers))

    async def scroll(self, x, y, direction, amount) -> None:
        self._record("scroll", x, y, direction, amount)

    async def move(self, x, y) -> None:
        self._record("move", x, y)

    async def drag(self, start_x, start_y, end_x, end_y) -> None:
        self._record("drag", start_x, start_y, end_x, end_y)

    async def find_element(self, description):
        self._record("find_element", description)
        return None


class FakeDriverProvider:
    """DriverProvider lending one FakeDriver."""

    def __init__(self, driver: Optional[FakeDriver] = None):
        self.driver = driver or FakeDriver()
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        try:
            yield self.driver
        finally:
            self.released += 1


def analysis_payload(method: str = "api", confidence: float = 0.85, **overrides) -> dict[str, Any]:
    payload = {
        "category": "integration",
        "subcategory": "erp_sync",
        "severity": "high",
        "affectedSystems": ["MES", "ERP"],
        "requiredActions": ["check sync status", "resend work order"],
        "suggestedMethod": method,
        "confidence": confidence,
        "reasoning": "The ERP exposes a work-order API",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def drivers(driver) -> FakeDriverProvider:
    return FakeDriverProvider(driver)


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(settle_interval=0, stage_timeout=5.0)


@pytest.fixture
def make_analysis():
    return analysis_payload


@pytest.fixture
def llm_factory():
    return ScriptedLLM


@pytest.fixture
def drivers_factory():
    return FakeDriverProvider
