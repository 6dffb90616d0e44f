"""
Channel Executors

One executor per ExecutionChannel, all sharing execute(plan) -> ChannelResult.
"""

from .base import ChannelExecutor, StepwiseExecutor
from .api import APIExecutor
from .tool import ToolExecutor
from .rpa import RPAExecutor

__all__ = [
    "APIExecutor",
    "ChannelExecutor",
    "RPAExecutor",
    "StepwiseExecutor",
    "ToolExecutor",
]
