"""
Operator approval for plans that change production systems.
"""

from typing import Optional

from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from ..models import ExecutionPlan
from .action import print_plan
from .console import AgentConsole, get_console

_RISK_COLORS = {"low": "green", "medium": "yellow", "high": "red"}


def confirm_plan(plan: ExecutionPlan, *, console: Optional[AgentConsole] = None) -> bool:
    """
    Show a plan and ask the operator to approve it.

    Returns:
        True if the operator approved; False on refusal or Ctrl-C
    """
    console = console or get_console()
    color = _RISK_COLORS.get(plan.risk_level, "yellow")

    print_plan(plan, console=console)

    content = Text()
    content.append(f"Risk level: {plan.risk_level}\n", style=f"bold {color}")
    content.append(f"Channel: {plan.channel.value}\n")
    content.append(f"Steps: {len(plan.steps)}")
    console.print(Panel(
        content,
        title=f"[bold {color}]⚠️ Approval Required[/]",
        border_style=color,
        padding=(1, 2),
    ))

    try:
        return Confirm.ask(
            f"[{color}]Execute this plan?[/]",
            default=False,
            console=console.console,
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/]")
        return False
