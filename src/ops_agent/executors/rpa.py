"""
RPA Executor

Turns a plan into one ComputerUseTask and hands it to the perception-action
loop. A step whose operation is a template id seeds the task from that
template; otherwise the task is assembled from the steps themselves.
"""

import logging
from typing import Optional

from ..agents.computer_use import ComputerUseAgent
from ..models import ChannelResult, ComputerUseTask, Credentials, ExecutionChannel, ExecutionPlan
from ..templates import get_template, instantiate
from .base import ChannelExecutor

logger = logging.getLogger(__name__)


class RPAExecutor(ChannelExecutor):
    """Runs plans through the GUI automation loop."""

    channel = ExecutionChannel.RPA
    bounds_own_runtime = True

    def __init__(
        self,
        agent: ComputerUseAgent,
        credentials: Optional[Credentials] = None,
        task_timeout: Optional[float] = None,
    ):
        """
        Initialize the executor.

        Args:
            agent: Perception-action loop
            credentials: Login material for tasks that require authentication
            task_timeout: Wall-clock budget per task in seconds (None = unbounded)
        """
        self.agent = agent
        self.credentials = credentials
        self.task_timeout = task_timeout

    def build_task(self, plan: ExecutionPlan) -> ComputerUseTask:
        steps = plan.ordered_steps()
        instructions = "\n".join(
            f"{index}. {step.description}" for index, step in enumerate(steps, start=1)
        )
        inputs: dict[str, str] = {}
        for step in steps:
            inputs.update({key: str(value) for key, value in step.parameters.items()})

        for step in steps:
            if get_template(step.operation) is not None:
                logger.info("Using RPA template %s", step.operation)
                task = instantiate(
                    step.operation,
                    task_id=plan.id,
                    inputs=inputs,
                    credentials=self.credentials,
                    timeout=self.task_timeout,
                )
                if instructions:
                    task = task.model_copy(update={
                        "instructions": f"{task.instructions}\n\nPlan:\n{instructions}",
                    })
                return task

        first = steps[0] if steps else None
        return ComputerUseTask(
            id=plan.id,
            name=(first.operation if first else "") or "GUI task",
            description=plan.problem,
            instructions=instructions or plan.problem,
            target_application=(first.target if first else "") or None,
            inputs=inputs,
            timeout=self.task_timeout,
            requires_auth=self.credentials is not None,
            credentials=self.credentials,
        )

    async def execute(self, plan: ExecutionPlan) -> ChannelResult:
        result = await self.agent.execute_task(self.build_task(plan))
        return ChannelResult(
            success=result.success,
            channel=self.channel,
            data=result,
            error=result.error,
        )
