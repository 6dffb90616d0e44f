"""
Channel Executor Contract

Every channel executes an ExecutionPlan and answers with a ChannelResult.
StepwiseExecutor is the shared shape of the two structured channels: steps
run in order, the first failing step ends the run, and the results of the
steps that already ran are kept in the ChannelResult.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from ..errors import EmptyPlan, OpsAgentError
from ..models import ChannelResult, ExecutionChannel, ExecutionPlan, PlanStep, StepResult

logger = logging.getLogger(__name__)


class ChannelExecutor(ABC):
    """Executes plans for one channel."""

    channel: ExecutionChannel

    # True when execute() enforces its own deadline and must not be cancelled
    bounds_own_runtime: bool = False

    @abstractmethod
    async def execute(self, plan: ExecutionPlan) -> ChannelResult:
        """Run the plan and report the channel outcome."""


class StepwiseExecutor(ChannelExecutor):
    """
    Sequential step runner for the API and tool channels.

    Subclasses implement run_step(); a domain error raised there fails the
    step and stops the run. Other exceptions propagate. run_state is a fresh
    dict for every execute() call, for anything a subclass caches across the
    steps of one run.
    """

    @abstractmethod
    async def run_step(self, step: PlanStep, run_state: dict[str, Any]) -> Any:
        """Execute one step and return its output."""

    async def execute(self, plan: ExecutionPlan) -> ChannelResult:
        """
        Run every step in order.

        Raises:
            EmptyPlan: The plan has no steps
        """
        steps = plan.ordered_steps()
        if not steps:
            raise EmptyPlan(f"Plan {plan.id} has no steps for the {self.channel.value} channel")

        results: list[StepResult] = []
        run_state: dict[str, Any] = {}
        for step in steps:
            logger.info(
                "Step %d: %s.%s (%s)", step.order, step.target, step.operation, step.description
            )
            start = time.perf_counter()
            try:
                output = await self.run_step(step, run_state)
            except OpsAgentError as e:
                results.append(StepResult(
                    order=step.order,
                    target=step.target,
                    operation=step.operation,
                    success=False,
                    error=str(e),
                    duration_ms=(time.perf_counter() - start) * 1000,
                ))
                logger.error("Step %d failed: %s", step.order, e)
                return ChannelResult(
                    success=False,
                    channel=self.channel,
                    data=[result.output for result in results if result.success],
                    error=str(e),
                    error_type=type(e).__name__,
                    step_results=results,
                )

            results.append(StepResult(
                order=step.order,
                target=step.target,
                operation=step.operation,
                success=True,
                output=output,
                duration_ms=(time.perf_counter() - start) * 1000,
            ))

        return ChannelResult(
            success=True,
            channel=self.channel,
            data=[result.output for result in results],
            step_results=results,
        )
