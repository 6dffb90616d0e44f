"""
External tool-protocol (MCP) access over a local CLI bridge.
"""

from .client import MCPBridge, MCPServerConfig, MCPTool, MCPToolResult

__all__ = ["MCPBridge", "MCPServerConfig", "MCPTool", "MCPToolResult"]
