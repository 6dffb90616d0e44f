"""
Channel Selection

The classifier's suggested method is trusted verbatim. No confidence
threshold is applied here; integrators who want one (e.g. escalating
low-confidence reports to a human) pass a ChannelPolicy to the engine.
"""

from typing import Callable, Optional

from ..models import ExecutionChannel, ProblemAnalysis

# Returns a replacement channel, or None to keep the selected one.
ChannelPolicy = Callable[[ProblemAnalysis, ExecutionChannel], Optional[ExecutionChannel]]


def select_channel(analysis: ProblemAnalysis) -> ExecutionChannel:
    """Map an analysis to its execution channel."""
    return ExecutionChannel(analysis.suggested_method)
