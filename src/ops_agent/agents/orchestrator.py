"""
Orchestration Engine

Resolves a problem report end to end:

    classify -> select -> plan -> approve -> execute

Every stage runs under the configured stage timeout. The first failing stage
short-circuits the rest; handle_problem never raises for stage failures and
instead returns a failed ExecutionResult that keeps whatever artifacts the
earlier stages produced.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from ..browser.driver import DriverProvider
from ..config import EngineConfig
from ..connectors import ConnectorRegistry
from ..errors import ApprovalRequired, ChannelUnavailable, StageTimeout
from ..executors.base import ChannelExecutor
from ..llm import LLMProvider, ParsePolicy
from ..mcp import MCPBridge
from ..models import (
    ChannelResult,
    Credentials,
    ExecutionChannel,
    ExecutionPlan,
    ExecutionResult,
    ProblemAnalysis,
)
from ..templates import template_ids
from .classifier import ProblemClassifier
from .computer_use import ActionObserver, ComputerUseAgent
from .planner import PlanGenerator
from .selector import ChannelPolicy, select_channel

logger = logging.getLogger(__name__)

T = TypeVar("T")

ApprovalHandler = Callable[[ExecutionPlan], bool]


class OrchestrationEngine:
    """
    Classify, plan and execute industrial problem reports.

    Usage:
        >>> engine = OrchestrationEngine(llm, executors=[APIExecutor(registry)], registry=registry)
        >>> result = await engine.handle_problem("Sync of work order WO-1182 to ERP failed")
        >>> result.success, result.channel, result.failed_stage
    """

    def __init__(
        self,
        llm: LLMProvider,
        executors: Iterable[ChannelExecutor],
        config: Optional[EngineConfig] = None,
        registry: Optional[ConnectorRegistry] = None,
        bridge: Optional[MCPBridge] = None,
        channel_policy: Optional[ChannelPolicy] = None,
        approval_handler: Optional[ApprovalHandler] = None,
    ):
        """
        Initialize the engine.

        Args:
            llm: Language-model collaborator for classification and planning
            executors: One executor per supported channel
            config: Engine configuration (uses env if None)
            registry: API connectors, listed in the resource inventory
            bridge: Tool bridge, its enabled servers listed in the resource inventory
            channel_policy: Optional override of the classifier's suggested channel
            approval_handler: Decides plans that require approval; without one
                such plans stop with ApprovalRequired
        """
        self.config = config or EngineConfig.from_env()
        self.llm = llm
        self.executors: dict[ExecutionChannel, ChannelExecutor] = {
            executor.channel: executor for executor in executors
        }
        self.registry = registry
        self.bridge = bridge
        self.channel_policy = channel_policy
        self.approval_handler = approval_handler

        policy = ParsePolicy(degrade_on_malformed=self.config.degrade_on_malformed)
        self.classifier = ProblemClassifier(llm)
        self.planner = PlanGenerator(llm, parse_policy=policy)

    async def _stage(self, name: str, operation: Awaitable[T]) -> T:
        timeout = self.config.stage_timeout
        if timeout is None:
            return await operation
        try:
            return await asyncio.wait_for(operation, timeout)
        except asyncio.TimeoutError:
            raise StageTimeout(name, timeout)

    async def gather_resources(self) -> dict[str, Any]:
        """
        Inventory of what the channels can reach, for the model prompts.

        Returns:
            {"api_connectors": {name: [endpoint, ...]},
             "mcp_servers": {name: [tool, ...]},
             "rpa_templates": [template id, ...]}
        """
        resources: dict[str, Any] = {}

        if self.registry is not None and ExecutionChannel.API in self.executors:
            resources["api_connectors"] = {
                name: self.registry.endpoints(name) for name in self.registry.list()
            }

        if self.bridge is not None and ExecutionChannel.MCP in self.executors:
            servers = {}
            for server in self.bridge.list_servers():
                tools = await self.bridge.list_tools(server.name)
                servers[server.name] = [tool.name for tool in tools]
            resources["mcp_servers"] = servers

        if ExecutionChannel.RPA in self.executors:
            resources["rpa_templates"] = template_ids()

        return resources

    def select(self, analysis: ProblemAnalysis) -> ExecutionChannel:
        """Pick the channel, then let the optional policy override it."""
        channel = select_channel(analysis)
        if self.channel_policy is not None:
            override = self.channel_policy(analysis, channel)
            if override is not None and override != channel:
                logger.info("Channel policy overrode %s with %s", channel.value, override.value)
                channel = override
        return channel

    async def analyze(self, problem: str) -> tuple[ProblemAnalysis, dict[str, Any]]:
        """Classify a problem against the current resource inventory."""
        resources = await self.gather_resources()
        analysis = await self.classifier.classify(problem, resources)
        return analysis, resources

    async def plan(
        self,
        problem: str,
        analysis: ProblemAnalysis,
        channel: ExecutionChannel,
        resources: Optional[dict[str, Any]] = None,
    ) -> ExecutionPlan:
        return await self.planner.generate(problem, analysis, channel, resources)

    def check_approval(self, plan: ExecutionPlan) -> None:
        """
        Raises:
            ApprovalRequired: The plan needs approval and was not granted
        """
        if not plan.approval_required:
            return
        if self.approval_handler is None or not self.approval_handler(plan):
            raise ApprovalRequired(
                f"Plan {plan.id} (risk={plan.risk_level}) requires operator approval"
            )
        logger.info("Plan %s approved", plan.id)

    async def execute(self, channel: ExecutionChannel, plan: ExecutionPlan) -> ChannelResult:
        executor = self.executors.get(channel)
        if executor is None:
            raise ChannelUnavailable(channel.value)
        return await executor.execute(plan)

    async def handle_problem(self, problem: str, dry_run: bool = False) -> ExecutionResult:
        """
        Resolve a problem report.

        Args:
            problem: Free-text incident description
            dry_run: Stop after planning (and the approval check is skipped)

        Returns:
            ExecutionResult; success follows the channel result. On failure,
            error and failed_stage are set and earlier artifacts are kept.
        """
        start = time.perf_counter()
        analysis: Optional[ProblemAnalysis] = None
        channel: Optional[ExecutionChannel] = None
        plan: Optional[ExecutionPlan] = None
        result: Optional[ChannelResult] = None
        stage = "classify"

        def finish(success: bool, error: Optional[str] = None, failed_stage: Optional[str] = None) -> ExecutionResult:
            return ExecutionResult(
                success=success,
                channel=channel,
                analysis=analysis,
                plan=plan,
                result=result,
                error=error,
                failed_stage=failed_stage,
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        try:
            logger.info("Handling problem: %s", problem[:120])
            analysis, resources = await self._stage(stage, self.analyze(problem))

            stage = "select"
            channel = self.select(analysis)
            logger.info("Selected channel: %s", channel.value)

            stage = "plan"
            plan = await self._stage(stage, self.plan(problem, analysis, channel, resources))

            if dry_run:
                return finish(True)

            stage = "approve"
            self.check_approval(plan)

            stage = "execute"
            executor = self.executors.get(channel)
            if executor is not None and executor.bounds_own_runtime:
                # Stops on its own deadline and keeps the partial progress
                result = await self.execute(channel, plan)
            else:
                result = await self._stage(stage, self.execute(channel, plan))
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error("Stage %s failed: %s", stage, error)
            return finish(False, error, stage)

        if not result.success:
            error = result.error or f"{channel.value} execution failed"
            logger.error("Execution on %s failed: %s", channel.value, error)
            return finish(False, error, "execute")

        logger.info("Problem resolved via %s", channel.value)
        return finish(True)


def create_engine(
    llm: LLMProvider,
    config: Optional[EngineConfig] = None,
    registry: Optional[ConnectorRegistry] = None,
    bridge: Optional[MCPBridge] = None,
    drivers: Optional[DriverProvider] = None,
    approval_handler: Optional[ApprovalHandler] = None,
    on_action: Optional[ActionObserver] = None,
    credentials: Optional[Credentials] = None,
) -> OrchestrationEngine:
    """
    Factory function to create an OrchestrationEngine.

    An executor is created for each collaborator supplied: API for a
    registry, tools for a bridge, RPA for a DriverProvider (e.g. SessionPool).

    Example:
        >>> engine = create_engine(llm, registry=ConnectorRegistry.from_file("connectors.json"))
        >>> result = await engine.handle_problem("MES shows line 2 as stopped")
    """
    # Lazy import to avoid circular imports (the RPA executor wraps ComputerUseAgent)
    from ..executors import APIExecutor, RPAExecutor, ToolExecutor

    config = config or EngineConfig.from_env()
    executors: list[ChannelExecutor] = []

    if registry is not None:
        executors.append(APIExecutor(registry))
    if bridge is not None:
        executors.append(ToolExecutor(bridge))
    if drivers is not None:
        agent = ComputerUseAgent(
            llm,
            drivers,
            max_steps=config.max_steps,
            settle_interval=config.settle_interval,
            history_window=config.history_window,
            parse_policy=ParsePolicy(degrade_on_malformed=config.degrade_on_malformed),
            on_action=on_action,
        )
        # The engine never cancels the GUI loop, so the stage budget becomes its deadline
        task_timeout = min(
            (limit for limit in (config.rpa_task_timeout, config.stage_timeout) if limit is not None),
            default=None,
        )
        executors.append(RPAExecutor(agent, credentials=credentials, task_timeout=task_timeout))

    return OrchestrationEngine(
        llm,
        executors,
        config=config,
        registry=registry,
        bridge=bridge,
        approval_handler=approval_handler,
    )
