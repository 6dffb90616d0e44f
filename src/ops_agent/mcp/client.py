"""
Tool-Protocol Bridge

Talks to external MCP servers through a local CLI:

    <command> tool list --server <server>
    <command> tool call <tool> --server <server> --input <json>

Every invocation is bounded: discovery and calls have separate timeouts and
captured output is capped. A process that overruns either limit is killed.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024


class MCPServerConfig(BaseModel):
    name: str
    display_name: str = ""
    description: str = ""
    enabled: bool = True


class MCPTool(BaseModel):
    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class MCPToolResult(BaseModel):
    """Result of a tool call; content is decoded JSON or raw text."""

    success: bool
    content: Any = None
    error: Optional[str] = None
    is_error: bool = False


class BridgeError(Exception):
    """The CLI process timed out or produced too much output."""


@dataclass
class _Completed:
    returncode: int
    stdout: str
    stderr: str


class MCPBridge:
    """
    Bounded CLI bridge to MCP tool servers.

    Usage:
        >>> bridge = MCPBridge("mcp-cli", [MCPServerConfig(name="notion")])
        >>> tools = await bridge.list_tools("notion")
        >>> result = await bridge.call_tool("notion", "search_pages", {"query": "PLC-7"})
    """

    def __init__(
        self,
        command: str | list[str] = "mcp-cli",
        servers: Optional[list[MCPServerConfig]] = None,
        discovery_timeout: float = 30.0,
        call_timeout: float = 60.0,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ):
        """
        Initialize the bridge.

        Args:
            command: CLI executable, or executable plus leading arguments
            servers: Known tool servers
            discovery_timeout: Seconds allowed for `tool list`
            call_timeout: Seconds allowed for `tool call`
            max_output_bytes: Cap on captured stdout and stderr (each)
        """
        self.command = [command] if isinstance(command, str) else list(command)
        self.servers = list(servers or [])
        self.discovery_timeout = discovery_timeout
        self.call_timeout = call_timeout
        self.max_output_bytes = max_output_bytes

    def list_servers(self) -> list[MCPServerConfig]:
        """Enabled servers only."""
        return [server for server in self.servers if server.enabled]

    def get_server(self, name: str) -> Optional[MCPServerConfig]:
        for server in self.list_servers():
            if server.name == name:
                return server
        return None

    async def _read_bounded(self, stream: asyncio.StreamReader) -> bytes:
        chunks = []
        total = 0
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            total += len(chunk)
            if total > self.max_output_bytes:
                raise BridgeError(f"output exceeded {self.max_output_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)

    async def _run(self, args: list[str], timeout: float) -> _Completed:
        process = await asyncio.create_subprocess_exec(
            *self.command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        async def collect() -> tuple[bytes, bytes]:
            stdout, stderr = await asyncio.gather(
                self._read_bounded(process.stdout),
                self._read_bounded(process.stderr),
            )
            await process.wait()
            return stdout, stderr

        try:
            stdout, stderr = await asyncio.wait_for(collect(), timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise BridgeError(f"timed out after {timeout}s")
        except BridgeError:
            await self._kill(process)
            raise

        return _Completed(
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            process.kill()
            await process.wait()

    @staticmethod
    def _parse_tool_list(output: str) -> list[MCPTool]:
        """Parse `tool list` output: JSON when possible, else `name:` / `description:` lines."""
        try:
            data = json.loads(output)
        except ValueError:
            data = None

        if isinstance(data, dict):
            data = data.get("tools")
        if isinstance(data, list):
            tools = []
            for item in data:
                if isinstance(item, dict) and item.get("name"):
                    tools.append(MCPTool(
                        name=item["name"],
                        description=item.get("description") or "",
                        input_schema=item.get("inputSchema") or item.get("input_schema")
                        or {"type": "object", "properties": {}},
                    ))
            return tools

        tools = []
        current: Optional[dict[str, str]] = None
        for line in output.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            key, sep, value = stripped.partition(":")
            key = key.strip().lower()
            if not sep:
                continue
            if key in ("tool", "name"):
                if current and current.get("name"):
                    tools.append(MCPTool(**current))
                current = {"name": value.strip(), "description": ""}
            elif key == "description" and current is not None:
                current["description"] = value.strip()
        if current and current.get("name"):
            tools.append(MCPTool(**current))
        return tools

    async def list_tools(self, server: str) -> list[MCPTool]:
        """
        Discover the tools a server exposes.

        Discovery is best-effort: any failure is logged and yields [].
        """
        try:
            completed = await self._run(
                ["tool", "list", "--server", server], self.discovery_timeout
            )
        except (BridgeError, OSError) as e:
            logger.warning("Tool discovery failed for %s: %s", server, e)
            return []

        if completed.returncode != 0:
            logger.warning(
                "Tool discovery for %s exited with %s: %s",
                server,
                completed.returncode,
                completed.stderr.strip()[:200],
            )
            return []

        return self._parse_tool_list(completed.stdout)

    async def call_tool(self, server: str, tool: str, params: dict[str, Any]) -> MCPToolResult:
        """
        Invoke a tool.

        Returns:
            MCPToolResult; non-JSON stdout is returned as raw text with success=True
        """
        logger.info("Calling tool %s/%s", server, tool)
        logger.debug("Tool params: %s", params)

        args = [
            "tool", "call", tool,
            "--server", server,
            "--input", json.dumps(params, ensure_ascii=False),
        ]

        try:
            completed = await self._run(args, self.call_timeout)
        except (BridgeError, OSError) as e:
            logger.error("Tool call %s/%s failed: %s", server, tool, e)
            return MCPToolResult(success=False, error=str(e), is_error=True)

        stdout = completed.stdout.strip()
        stderr = completed.stderr.strip()

        if completed.returncode != 0:
            return MCPToolResult(
                success=False,
                error=stderr or f"exit status {completed.returncode}",
                is_error=True,
            )

        if stderr and not stdout:
            return MCPToolResult(success=False, error=stderr, is_error=True)

        try:
            content = json.loads(stdout)
        except ValueError:
            content = stdout

        return MCPToolResult(success=True, content=content)
