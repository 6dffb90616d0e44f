"""
API Executor

Each plan step names a connector (target), one of its endpoints (operation)
and the request parameters.
"""

from typing import Any

from ..connectors import ConnectorRegistry
from ..errors import ConnectorCallFailed
from ..models import ExecutionChannel, PlanStep
from .base import StepwiseExecutor


class APIExecutor(StepwiseExecutor):
    """Runs plans against registered domain API connectors."""

    channel = ExecutionChannel.API

    def __init__(self, registry: ConnectorRegistry):
        self.registry = registry

    async def run_step(self, step: PlanStep, run_state: dict[str, Any]) -> Any:
        connector = self.registry.require(step.target)
        result = await connector.call(step.operation, step.parameters)
        if not result.success:
            raise ConnectorCallFailed(
                f"{step.target}.{step.operation} failed: {result.error or 'unknown error'}"
            )
        return result.data
