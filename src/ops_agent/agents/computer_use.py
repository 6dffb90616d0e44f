"""
Computer Use Agent

Bounded perception-action loop for problems that can only be solved through
a graphical interface:

1. PLAN: one model call breaks the task into GUI steps (may come back empty)
2. STEP (at most max_steps times):
   - capture the screen
   - ask the model for the next action, or completion
   - inject the action through the screen driver
   - for read_screen, extract data from the screenshot and merge it
   - let the UI settle
3. Finish as completed (model said so), exhausted (budget used up) or
   failed (a capture/decide/execute fault; partial progress is kept)

The driver is acquired from the DriverProvider when the run starts and is
released on every exit path.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from ..actions import (
    ClickAction,
    ComputerAction,
    DoubleClickAction,
    DragAction,
    FindElementAction,
    KeyAction,
    MoveAction,
    ReadScreenAction,
    ScreenshotAction,
    ScrollAction,
    TypeAction,
    WaitAction,
    dump_action,
    parse_action,
)
from ..browser.driver import DriverProvider, ScreenDriver
from ..errors import InjectionFailure, OpsAgentError, StageTimeout, UnsupportedActionType
from ..llm import (
    FAIL_OPEN,
    ImagePart,
    LLMProvider,
    Message,
    ModelRole,
    ParsePolicy,
    ResponseSchema,
    TextPart,
    decode_json,
    parse_json_object,
)
from ..models import ComputerUseResult, ComputerUseTask, ScreenElement

logger = logging.getLogger(__name__)

PASSWORD_PLACEHOLDER = "{{password}}"

TASK_PLAN_SCHEMA = ResponseSchema(
    name="task_plan",
    json_schema={
        "type": "object",
        "properties": {
            "steps": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["steps"],
        "additionalProperties": False,
    },
)

ActionObserver = Callable[[int, ComputerAction], None]


@dataclass
class _LoopProgress:
    """Accumulated state of one run; survives faults so partial work is reported."""

    actions: list[ComputerAction] = field(default_factory=list)
    screenshots: list[str] = field(default_factory=list)
    extracted_data: dict[str, Any] = field(default_factory=dict)
    steps_taken: int = 0
    completed: bool = False


def _image_message(text: str, screenshot: str) -> Message:
    return Message(
        role="user",
        content=[TextPart(text=text), ImagePart(url=screenshot, detail="high")],
    )


class ComputerUseAgent:
    """
    GUI automation agent driving the perception-action loop.

    Usage:
        >>> agent = ComputerUseAgent(llm, drivers=session_pool, max_steps=30)
        >>> result = await agent.execute_task(task)
        >>> result.success, result.completed, len(result.actions)
    """

    def __init__(
        self,
        llm: LLMProvider,
        drivers: DriverProvider,
        max_steps: int = 50,
        settle_interval: float = 0.5,
        history_window: int = 5,
        parse_policy: ParsePolicy = FAIL_OPEN,
        on_action: Optional[ActionObserver] = None,
    ):
        """
        Initialize the agent.

        Args:
            llm: Language-model collaborator
            drivers: Lends a ScreenDriver per run (e.g. SessionPool)
            max_steps: Step budget per task
            settle_interval: Seconds to pause after each action
            history_window: Number of recent actions shown to the model
            parse_policy: Handling of malformed model output
            on_action: Called with (step, action) after each executed action
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")

        self.llm = llm
        self.drivers = drivers
        self.max_steps = max_steps
        self.settle_interval = settle_interval
        self.history_window = history_window
        self.parse_policy = parse_policy
        self.on_action = on_action

        self._handlers: dict[str, Callable[[ScreenDriver, Any, ComputerUseTask], Awaitable[None]]] = {
            "click": self._do_click,
            "double_click": self._do_double_click,
            "type": self._do_type,
            "key": self._do_key,
            "scroll": self._do_scroll,
            "move": self._do_move,
            "drag": self._do_drag,
            "screenshot": self._do_screenshot,
            "wait": self._do_wait,
            "find_element": self._do_find_element,
            "read_screen": self._do_read_screen,
        }

    @property
    def handled_action_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def execute_task(self, task: ComputerUseTask) -> ComputerUseResult:
        """
        Run the perception-action loop for a task.

        Never raises for task-level faults: they end the run with
        success=False and the actions/screenshots gathered so far. Running
        out of step budget is success=True with completed=False.
        """
        start = time.perf_counter()
        progress = _LoopProgress()
        error: Optional[str] = None

        logger.info("RPA task %s started: %s", task.id, task.name)

        try:
            async with self.drivers.acquire() as driver:
                run = self._run(task, driver, progress)
                if task.timeout is None:
                    await run
                else:
                    try:
                        await asyncio.wait_for(run, task.timeout)
                    except asyncio.TimeoutError:
                        raise StageTimeout("rpa_task", task.timeout)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error("RPA task %s failed after %d steps: %s", task.id, progress.steps_taken, error)

        if error is None and not progress.completed:
            logger.warning(
                "RPA task %s used its whole budget of %d steps without completing",
                task.id,
                self.max_steps,
            )

        return ComputerUseResult(
            success=error is None,
            task_id=task.id,
            actions=tuple(progress.actions),
            screenshots=tuple(progress.screenshots),
            extracted_data=dict(progress.extracted_data),
            error=error,
            duration_ms=(time.perf_counter() - start) * 1000,
            completed=progress.completed,
            steps_taken=progress.steps_taken,
        )

    async def _run(self, task: ComputerUseTask, driver: ScreenDriver, progress: _LoopProgress) -> None:
        plan = await self.plan_task(task)
        logger.debug("RPA task %s plan: %s", task.id, plan)

        for step in range(self.max_steps):
            screenshot = await driver.capture_screen()
            progress.screenshots.append(screenshot)
            progress.steps_taken = step + 1

            action = await self.decide_next_action(task, plan, screenshot, progress.actions, step)
            if action is None:
                progress.completed = True
                logger.info("RPA task %s completed at step %d", task.id, step + 1)
                return

            await self.execute_action(driver, action, task)
            progress.actions.append(action)
            logger.debug("Step %d executed %s", step + 1, action.type)

            if self.on_action is not None:
                self.on_action(step + 1, action)

            if isinstance(action, ReadScreenAction):
                extracted = await self.extract_data_from_screen(screenshot, task)
                progress.extracted_data.update(extracted)

            await asyncio.sleep(self.settle_interval)

    async def plan_task(self, task: ComputerUseTask) -> list[str]:
        """Break the task into GUI steps; missing or malformed output gives []."""
        system = (
            "You are a computer-use expert who turns an operator task into concrete "
            "GUI steps for an industrial application (MES, SCADA, ERP or OA).\n\n"
            f"Task name: {task.name}\n"
            f"Description: {task.description}\n"
            f"Target application: {task.target_application or 'unspecified'}\n"
            f"Inputs: {json.dumps(task.inputs, ensure_ascii=False)}\n\n"
            'Return JSON: {"steps": ["step 1", "step 2", ...]}'
        )
        response = await self.llm.complete(
            [Message(role="system", content=system), Message(role="user", content=task.instructions)],
            role=ModelRole.REASONING,
            response_schema=TASK_PLAN_SCHEMA,
        )

        data = parse_json_object(response.content, self.parse_policy, "task plan")
        if data is None:
            return []

        steps = data.get("steps")
        if not isinstance(steps, list):
            self.parse_policy.malformed("task plan", response.content)
            return []

        return [step for step in steps if isinstance(step, str)]

    async def decide_next_action(
        self,
        task: ComputerUseTask,
        plan: list[str],
        screenshot: str,
        previous_actions: list[ComputerAction],
        step: int,
    ) -> Optional[ComputerAction]:
        """
        Ask the model for the next action.

        Returns:
            The action to perform, or None when the task is complete. Missing
            or (under the fail-open policy) malformed output also returns None.

        Raises:
            UnsupportedActionType: The model chose an action kind outside the closed set
        """
        recent = [dump_action(action) for action in previous_actions[-self.history_window:]]
        system = (
            "You are a computer-use agent. Look at the screenshot and decide the next "
            "GUI action for the task, or declare the task complete.\n\n"
            f"Task: {task.description}\n"
            f"Plan: {json.dumps(plan, ensure_ascii=False)}\n"
            f"Current step: {step + 1} of at most {self.max_steps}\n"
            f"Recent actions: {json.dumps(recent, ensure_ascii=False)}\n\n"
            "Action types: click(x, y, button), double_click(x, y), type(text), "
            "key(key, modifiers), scroll(x, y, direction, amount), move(x, y), "
            "drag(startX, startY, endX, endY), screenshot, wait(duration ms), "
            "find_element(description), read_screen(region).\n"
        )
        if task.requires_auth and task.credentials is not None:
            system += (
                f"Log in as '{task.credentials.username or ''}'; to enter the password "
                f"type the literal text {PASSWORD_PLACEHOLDER}.\n"
            )
        system += (
            'Answer with JSON: {"completed": false, "action": {"type": "click", "x": 100, '
            '"y": 200}, "reasoning": "..."} or {"completed": true, "action": null, '
            '"reasoning": "..."}'
        )

        response = await self.llm.complete(
            [
                Message(role="system", content=system),
                _image_message(
                    "Decide the next action. Inputs: "
                    + json.dumps(task.inputs, ensure_ascii=False),
                    screenshot,
                ),
            ],
            role=ModelRole.REASONING,
        )

        decision = parse_json_object(response.content, self.parse_policy, "next action")
        if decision is None or decision.get("completed"):
            return None

        raw_action = decision.get("action")
        if raw_action is None:
            return None

        try:
            return parse_action(raw_action)
        except ValidationError:
            self.parse_policy.malformed("next action", response.content)
            return None

    async def execute_action(self, driver: ScreenDriver, action: ComputerAction, task: ComputerUseTask) -> None:
        """
        Perform one action through the driver.

        Raises:
            UnsupportedActionType: No handler exists for the action kind
            InjectionFailure: The driver failed
        """
        handler = self._handlers.get(action.type)
        if handler is None:
            raise UnsupportedActionType(action.type)

        try:
            await handler(driver, action, task)
        except OpsAgentError:
            raise
        except Exception as e:
            raise InjectionFailure(f"{action.type} failed: {e}") from e

    async def extract_data_from_screen(self, screenshot: str, task: ComputerUseTask) -> dict[str, Any]:
        """
        Read task-relevant data off a screenshot.

        Missing content gives {}; content that is not a JSON object is kept
        as {"rawText": content}.
        """
        system = (
            "You extract data from screenshots of industrial software. "
            f"Task: {task.description}\n"
            "Return the relevant data as a JSON object."
        )
        response = await self.llm.complete(
            [
                Message(role="system", content=system),
                _image_message("Extract the relevant data from this screen.", screenshot),
            ],
            role=ModelRole.PERCEPTION,
        )

        content = response.content
        try:
            value = decode_json(content)
        except ValueError:
            self.parse_policy.malformed("screen extraction", content)
            return {"rawText": content}

        if value is None:
            return {}
        if not isinstance(value, dict):
            self.parse_policy.malformed("screen extraction", content)
            return {"rawText": content}
        return value

    async def analyze_screen(self, screenshot: str) -> list[ScreenElement]:
        """
        List the interactable elements visible on a screenshot.

        Pure perception query: touches no loop state. Missing or malformed
        output gives []; elements that fail validation are dropped.
        """
        system = (
            "You are a GUI analysis expert. Identify every interactable UI element "
            "in the screenshot. Return JSON: "
            '{"elements": [{"id": "element_1", "type": "button", "text": "Login", '
            '"bounds": {"x": 100, "y": 200, "width": 80, "height": 30}, '
            '"interactable": true, "confidence": 0.95}]}'
        )
        response = await self.llm.complete(
            [
                Message(role="system", content=system),
                _image_message("Analyze the UI elements on this screen.", screenshot),
            ],
            role=ModelRole.PERCEPTION,
        )

        data = parse_json_object(response.content, self.parse_policy, "screen analysis")
        if data is None:
            return []

        raw_elements = data.get("elements")
        if not isinstance(raw_elements, list):
            self.parse_policy.malformed("screen analysis", response.content)
            return []

        elements = []
        for raw in raw_elements:
            try:
                elements.append(ScreenElement.model_validate(raw))
            except ValidationError:
                self.parse_policy.malformed("screen element", json.dumps(raw, default=str))
        return elements

    # Action handlers

    async def _do_click(self, driver: ScreenDriver, action: ClickAction, task: ComputerUseTask) -> None:
        await driver.click(action.x, action.y, action.button)

    async def _do_double_click(self, driver: ScreenDriver, action: DoubleClickAction, task: ComputerUseTask) -> None:
        await driver.double_click(action.x, action.y)

    async def _do_type(self, driver: ScreenDriver, action: TypeAction, task: ComputerUseTask) -> None:
        text = action.text
        if PASSWORD_PLACEHOLDER in text and task.credentials and task.credentials.password:
            text = text.replace(PASSWORD_PLACEHOLDER, task.credentials.password)
        await driver.type_text(text)

    async def _do_key(self, driver: ScreenDriver, action: KeyAction, task: ComputerUseTask) -> None:
        await driver.press_key(action.key, action.modifiers)

    async def _do_scroll(self, driver: ScreenDriver, action: ScrollAction, task: ComputerUseTask) -> None:
        await driver.scroll(action.x, action.y, action.direction, action.amount)

    async def _do_move(self, driver: ScreenDriver, action: MoveAction, task: ComputerUseTask) -> None:
        await driver.move(action.x, action.y)

    async def _do_drag(self, driver: ScreenDriver, action: DragAction, task: ComputerUseTask) -> None:
        await driver.drag(action.start_x, action.start_y, action.end_x, action.end_y)

    async def _do_screenshot(self, driver: ScreenDriver, action: ScreenshotAction, task: ComputerUseTask) -> None:
        # Each step captures anyway; this image is not recorded.
        await driver.capture_screen()

    async def _do_wait(self, driver: ScreenDriver, action: WaitAction, task: ComputerUseTask) -> None:
        await asyncio.sleep(action.duration / 1000)

    async def _do_find_element(self, driver: ScreenDriver, action: FindElementAction, task: ComputerUseTask) -> None:
        found = await driver.find_element(action.description)
        logger.debug("find_element %r -> %s", action.description, found)

    async def _do_read_screen(self, driver: ScreenDriver, action: ReadScreenAction, task: ComputerUseTask) -> None:
        # Extraction happens in the loop, from the step's screenshot.
        return None
