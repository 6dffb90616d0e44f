"""
RESULT block display for analyses and execution outcomes.
"""

import json
from typing import Any, Optional

from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from ..models import ComputerUseResult, ExecutionResult, ProblemAnalysis
from .console import AgentConsole, get_console

_SEVERITY_STYLES = {
    "low": "green",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
}


def print_analysis(analysis: ProblemAnalysis, *, console: Optional[AgentConsole] = None) -> None:
    """Print an ANALYSIS block for a classified problem."""
    console = console or get_console()

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Category", f"{analysis.category} / {analysis.subcategory}")
    table.add_row("Severity", Text(analysis.severity, style=_SEVERITY_STYLES[analysis.severity]))
    table.add_row("Systems", ", ".join(sorted(analysis.affected_systems)) or "-")
    table.add_row("Method", f"{analysis.suggested_method.value} ({analysis.confidence:.0%})")
    for index, action in enumerate(analysis.required_actions, start=1):
        table.add_row("Action" if index == 1 else "", f"{index}. {action}")
    table.add_row("Reasoning", analysis.reasoning)

    console.print_block(table, "analysis")


def print_data_result(data: Any, *, title: Optional[str] = None, console: Optional[AgentConsole] = None) -> None:
    """Print structured data as highlighted JSON."""
    console = console or get_console()
    formatted = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    syntax = Syntax(formatted, "json", theme="monokai", word_wrap=True)
    console.print_block(syntax, "result", title=title or "[DATA]")


def print_error(
    error_message: str,
    *,
    stage: Optional[str] = None,
    console: Optional[AgentConsole] = None,
) -> None:
    """Print an error block."""
    console = console or get_console()

    content = Text()
    content.append("❌ Error", style="bold red")
    if stage:
        content.append(f" (stage: {stage})", style="dim red")
    content.append("\n\n")
    content.append(error_message)

    console.print_block(content, "error")


def _summarize_gui_run(run: ComputerUseResult) -> str:
    outcome = "completed" if run.completed else "stopped"
    return (
        f"GUI task {outcome} after {run.steps_taken} step(s), "
        f"{len(run.actions)} action(s)"
    )


def print_execution_result(result: ExecutionResult, *, console: Optional[AgentConsole] = None) -> None:
    """Print the final outcome of handle_problem."""
    console = console or get_console()

    if not result.success:
        print_error(result.error or "unknown error", stage=result.failed_stage, console=console)
        return

    text = Text()
    text.append("✓ ", style="bold green")
    channel = result.channel.value if result.channel else "-"
    text.append(f"Resolved via {channel} in {result.duration_ms / 1000:.1f}s")

    channel_result = result.result
    if channel_result is not None and isinstance(channel_result.data, ComputerUseResult):
        text.append(f"\n{_summarize_gui_run(channel_result.data)}", style="dim")

    console.print_block(text, "result")

    if channel_result is None:
        return
    if isinstance(channel_result.data, ComputerUseResult):
        if channel_result.data.extracted_data:
            print_data_result(channel_result.data.extracted_data, title="[EXTRACTED]", console=console)
    elif channel_result.data:
        print_data_result(channel_result.data, console=console)
