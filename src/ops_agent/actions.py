"""
Computer Actions

Closed set of GUI actions the perception-action loop can perform. Each kind
is its own frozen Pydantic model carrying only the fields relevant to it;
ComputerAction is the discriminated union over all of them.

Adding a kind means adding a model here, listing it in ComputerAction and
ACTION_TYPES, and registering a handler in ComputerUseAgent._handlers.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .errors import UnsupportedActionType


MouseButton = Literal["left", "right", "middle"]
ScrollDirection = Literal["up", "down", "left", "right"]


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class Region(BaseModel):
    """Rectangular screen region in pixels."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int = Field(ge=0)
    height: int = Field(ge=0)


class ClickAction(_Action):
    type: Literal["click"] = "click"
    x: int
    y: int
    button: MouseButton = "left"


class DoubleClickAction(_Action):
    type: Literal["double_click"] = "double_click"
    x: int
    y: int


class TypeAction(_Action):
    type: Literal["type"] = "type"
    text: str


class KeyAction(_Action):
    type: Literal["key"] = "key"
    key: str
    modifiers: tuple[str, ...] = ()


class ScrollAction(_Action):
    type: Literal["scroll"] = "scroll"
    x: int
    y: int
    direction: ScrollDirection
    amount: int = 300


class MoveAction(_Action):
    type: Literal["move"] = "move"
    x: int
    y: int


class DragAction(_Action):
    type: Literal["drag"] = "drag"
    start_x: int = Field(alias="startX")
    start_y: int = Field(alias="startY")
    end_x: int = Field(alias="endX")
    end_y: int = Field(alias="endY")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ScreenshotAction(_Action):
    type: Literal["screenshot"] = "screenshot"


class WaitAction(_Action):
    type: Literal["wait"] = "wait"
    duration: int = Field(ge=0, description="Milliseconds to wait")


class FindElementAction(_Action):
    type: Literal["find_element"] = "find_element"
    description: str


class ReadScreenAction(_Action):
    type: Literal["read_screen"] = "read_screen"
    region: Optional[Region] = None


ComputerAction = Annotated[
    Union[
        ClickAction,
        DoubleClickAction,
        TypeAction,
        KeyAction,
        ScrollAction,
        MoveAction,
        DragAction,
        ScreenshotAction,
        WaitAction,
        FindElementAction,
        ReadScreenAction,
    ],
    Field(discriminator="type"),
]

ACTION_TYPES: frozenset[str] = frozenset(
    (
        "click",
        "double_click",
        "type",
        "key",
        "scroll",
        "move",
        "drag",
        "screenshot",
        "wait",
        "find_element",
        "read_screen",
    )
)

_action_adapter: TypeAdapter = TypeAdapter(ComputerAction)


def parse_action(data: Any) -> ComputerAction:
    """
    Build a ComputerAction from a decoded model response.

    Args:
        data: Mapping with a "type" tag and that kind's fields

    Returns:
        The matching action variant

    Raises:
        UnsupportedActionType: The tag is missing or not one of ACTION_TYPES
        pydantic.ValidationError: The tag is known but its fields are invalid
    """
    if not isinstance(data, dict):
        raise UnsupportedActionType(type(data).__name__)

    action_type = data.get("type")
    if action_type not in ACTION_TYPES:
        raise UnsupportedActionType(action_type)

    return _action_adapter.validate_python(data)


def dump_action(action: ComputerAction) -> dict[str, Any]:
    """Serialize an action using the wire field names (camelCase for drag)."""
    return action.model_dump(by_alias=True, exclude_none=True)


__all__ = [
    "ACTION_TYPES",
    "ClickAction",
    "ComputerAction",
    "DoubleClickAction",
    "DragAction",
    "FindElementAction",
    "KeyAction",
    "MoveAction",
    "ReadScreenAction",
    "Region",
    "ScreenshotAction",
    "ScrollAction",
    "TypeAction",
    "WaitAction",
    "dump_action",
    "parse_action",
]
