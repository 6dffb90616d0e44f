"""
Tool Executor

Each plan step names a tool server (target), a tool (operation) and the tool
input (parameters). Tools are discovered once per server per run.
"""

import logging
from typing import Any

from ..errors import ToolInvocationFailed
from ..mcp import MCPBridge, MCPTool
from ..models import ExecutionChannel, PlanStep
from .base import StepwiseExecutor

logger = logging.getLogger(__name__)


class ToolExecutor(StepwiseExecutor):
    """Runs plans through the tool-protocol bridge."""

    channel = ExecutionChannel.MCP

    def __init__(self, bridge: MCPBridge):
        self.bridge = bridge

    async def _tools(self, server: str, run_state: dict[str, Any]) -> list[MCPTool]:
        discovered: dict[str, list[MCPTool]] = run_state.setdefault("tools", {})
        if server not in discovered:
            discovered[server] = await self.bridge.list_tools(server)
        return discovered[server]

    async def run_step(self, step: PlanStep, run_state: dict[str, Any]) -> Any:
        if self.bridge.get_server(step.target) is None:
            raise ToolInvocationFailed(f"Tool server not available: {step.target}")

        tools = await self._tools(step.target, run_state)
        # Empty discovery is inconclusive; let the call decide.
        if tools and step.operation not in {tool.name for tool in tools}:
            raise ToolInvocationFailed(f"Tool {step.operation!r} not found on {step.target}")

        result = await self.bridge.call_tool(step.target, step.operation, step.parameters)
        if not result.success:
            raise ToolInvocationFailed(
                f"{step.target}/{step.operation} failed: {result.error or 'unknown error'}"
            )
        return result.content
