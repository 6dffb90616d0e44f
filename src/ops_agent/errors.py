"""
Error Taxonomy

Domain errors raised by the orchestration pipeline and the perception-action
loop. Every error derives from OpsAgentError so the engine can convert any
stage failure into a failed ExecutionResult without catching unrelated bugs
by name.
"""

from typing import Optional


class OpsAgentError(Exception):
    """Base class for all ops_agent errors."""


class ClassificationError(OpsAgentError):
    """The problem report could not be turned into a ProblemAnalysis."""


class ClassificationEmpty(ClassificationError):
    """The model returned no content for the classification request."""


class ClassificationMalformed(ClassificationError):
    """The classification content did not match the analysis schema."""


class MalformedModelOutput(OpsAgentError):
    """Raised for unparseable model output when the parse policy is fail-closed."""

    def __init__(self, purpose: str, content: Optional[str] = None):
        self.purpose = purpose
        self.content = content
        preview = (content or "")[:120]
        super().__init__(f"Malformed model output for {purpose}: {preview!r}")


class ConnectorNotFound(OpsAgentError):
    """No API connector is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"API connector not found: {name}")


class ConnectorCallFailed(OpsAgentError):
    """A connector answered with success=False."""


class ToolInvocationFailed(OpsAgentError):
    """The tool-protocol bridge reported a failure, timed out or overflowed."""


class UnsupportedActionType(OpsAgentError):
    """The model selected an action kind the loop cannot execute."""

    def __init__(self, action_type: object):
        self.action_type = action_type
        super().__init__(f"Unsupported action type: {action_type!r}")


class InjectionFailure(OpsAgentError):
    """The input-injection driver failed while performing an action."""


class StaleElementIndex(OpsAgentError):
    """An element index from an older extraction pass was used."""


class EmptyPlan(OpsAgentError):
    """A structured channel received a plan with no steps."""


class ApprovalRequired(OpsAgentError):
    """The generated plan must be approved by an operator before execution."""


class StageTimeout(OpsAgentError):
    """An orchestration stage exceeded its time budget."""

    def __init__(self, stage: str, timeout: float):
        self.stage = stage
        self.timeout = timeout
        super().__init__(f"Stage '{stage}' timed out after {timeout}s")


class ChannelUnavailable(OpsAgentError):
    """No executor is configured for the selected channel."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"No executor configured for channel: {channel}")
