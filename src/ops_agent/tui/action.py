"""
ACTION block display for GUI actions and plan steps.
"""

from typing import Optional

from rich.table import Table
from rich.text import Text

from ..actions import ComputerAction, dump_action
from ..models import ExecutionPlan
from .console import AgentConsole, get_console

_ACTION_ICONS = {
    "click": "👆",
    "double_click": "👆",
    "type": "⌨️",
    "key": "⌨️",
    "scroll": "📜",
    "wait": "⏳",
    "read_screen": "🔎",
    "find_element": "🎯",
}


def print_computer_action(
    step: int,
    action: ComputerAction,
    *,
    console: Optional[AgentConsole] = None,
) -> None:
    """
    Print an ACTION block for one executed GUI action.

    Signature matches ComputerUseAgent's on_action observer.
    """
    console = console or get_console()

    params = dump_action(action)
    params.pop("type", None)

    content = Text()
    content.append(f"{_ACTION_ICONS.get(action.type, '⚡')} ", style="bold")
    content.append(action.type, style="bold green")
    if params:
        content.append("  ")
        content.append(", ".join(f"{key}={value}" for key, value in params.items()), style="dim")

    console.print_block(content, "action", title=f"[ACTION {step}]")


def print_plan(plan: ExecutionPlan, *, console: Optional[AgentConsole] = None) -> None:
    """Print the steps of an execution plan."""
    console = console or get_console()

    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("#", style="bold")
    table.add_column("Target")
    table.add_column("Operation", style="green")
    table.add_column("Description")

    for step in plan.ordered_steps():
        table.add_row(str(step.order), step.target, step.operation, step.description)

    title = f"[PLAN {plan.channel.value}] risk={plan.risk_level}"
    if plan.approval_required:
        title += " approval required"
    console.print_block(table if plan.steps else Text("(no steps)", style="dim"), "plan", title=title)

    if plan.rollback_plan:
        console.print(Text(f"Rollback: {plan.rollback_plan}", style="dim"))
