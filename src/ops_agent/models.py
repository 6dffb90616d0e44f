"""
Data Model

Pydantic models handed between pipeline stages:
- ProblemAnalysis: structured classification of a problem report
- ExecutionPlan / PlanStep: channel-tagged ordered steps
- ChannelResult / StepResult: outcome of one channel executor
- ComputerUseTask / ComputerUseResult: perception-action loop input and output
- ScreenElement: element reported by screen analysis
- ExecutionResult: final aggregate returned by handle_problem

Stage artifacts are frozen; a stage never mutates what an earlier stage produced.
"""

import uuid
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .actions import ComputerAction


Severity = Literal["low", "medium", "high", "critical"]
RiskLevel = Literal["low", "medium", "high"]


class ExecutionChannel(str, Enum):
    """Execution strategy used to resolve a problem."""

    API = "api"
    MCP = "mcp"
    RPA = "rpa"


class ProblemAnalysis(BaseModel):
    """
    Structured classification of a problem report.

    Validation Rules:
    - severity is one of low/medium/high/critical
    - suggested_method is one of the three channel tags
    - confidence lies in [0, 1]
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: str
    subcategory: str
    severity: Severity
    affected_systems: frozenset[str] = Field(alias="affectedSystems")
    required_actions: tuple[str, ...] = Field(alias="requiredActions")
    suggested_method: ExecutionChannel = Field(alias="suggestedMethod")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str


class PlanStep(BaseModel):
    """One step of an execution plan."""

    model_config = ConfigDict(frozen=True)

    order: int
    description: str
    """Free-text statement of what the step does."""

    target: str = ""
    """Connector name, tool server name, or target application."""

    operation: str = ""
    """Endpoint name, tool name, or GUI sub-goal."""

    parameters: dict[str, Any] = Field(default_factory=dict)


class ExecutionPlan(BaseModel):
    """
    Ordered, channel-tagged steps generated once per problem.

    Re-planning creates a new ExecutionPlan; plans are never patched.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"plan_{uuid.uuid4().hex[:12]}")
    channel: ExecutionChannel
    problem: str
    steps: tuple[PlanStep, ...] = ()
    risk_level: RiskLevel = "low"
    approval_required: bool = False
    rollback_plan: Optional[str] = None

    def ordered_steps(self) -> list[PlanStep]:
        """Steps sorted by their order field (stable for ties)."""
        return sorted(self.steps, key=lambda step: step.order)


class StepResult(BaseModel):
    """Outcome of a single plan step on a structured channel."""

    order: int
    target: str
    operation: str
    success: bool
    output: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0


class ChannelResult(BaseModel):
    """
    Common result contract shared by all channel executors.

    data holds the channel-specific payload: a list of step outputs for the
    structured channels, a ComputerUseResult for RPA.
    """

    success: bool
    channel: ExecutionChannel
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    """Class name of the domain error that ended execution."""

    step_results: list[StepResult] = Field(default_factory=list)


class Credentials(BaseModel):
    """Login material for tasks that require authentication."""

    model_config = ConfigDict(frozen=True)

    type: Literal["website", "desktop"] = "website"
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)


class ComputerUseTask(BaseModel):
    """GUI automation task handed to the perception-action loop."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    instructions: str
    target_application: Optional[str] = None
    inputs: dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = Field(default=None, gt=0)
    """Wall-clock budget for planning plus stepping, in seconds."""

    requires_auth: bool = False
    credentials: Optional[Credentials] = None


class ComputerUseResult(BaseModel):
    """
    Outcome of one perception-action loop run.

    actions and screenshots are chronological. success=True with
    steps_taken == max_steps and completed=False means the loop ran out of
    budget rather than finishing.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    task_id: str
    actions: tuple[ComputerAction, ...] = ()
    screenshots: tuple[str, ...] = ()
    extracted_data: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    duration_ms: float = 0.0
    completed: bool = False
    """True only when the model signalled completion (or degraded to it)."""

    steps_taken: int = 0


class Bounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class ScreenElement(BaseModel):
    """Interactable element reported by screen analysis."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: Literal[
        "button", "input", "text", "link", "image", "dropdown", "checkbox", "radio", "unknown"
    ] = "unknown"
    text: Optional[str] = None
    bounds: Bounds
    interactable: bool = True
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class ExecutionResult(BaseModel):
    """
    Final aggregate returned by OrchestrationEngine.handle_problem.

    Artifacts produced before a failing stage are kept for diagnosis.
    """

    success: bool
    channel: Optional[ExecutionChannel] = None
    analysis: Optional[ProblemAnalysis] = None
    plan: Optional[ExecutionPlan] = None
    result: Optional[ChannelResult] = None
    error: Optional[str] = None
    failed_stage: Optional[str] = None
    duration_ms: float = 0.0
