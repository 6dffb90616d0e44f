"""
Rich TUI Interface Module

Terminal output for the operations agent CLI:
- AgentConsole / TUIConfig: themed console and stage spinner
- ANALYSIS, PLAN, ACTION, RESULT and ERROR blocks
- Plan approval prompt
"""

from .console import AgentConsole, BlockType, TUIConfig, get_console, stage_spinner
from .action import print_computer_action, print_plan
from .result import print_analysis, print_data_result, print_error, print_execution_result
from .approval import confirm_plan

__all__ = [
    "AgentConsole",
    "BlockType",
    "TUIConfig",
    "confirm_plan",
    "get_console",
    "print_analysis",
    "print_computer_action",
    "print_data_result",
    "print_error",
    "print_execution_result",
    "print_plan",
    "stage_spinner",
]
