"""Remote tool server (MCP) integration.

This module connects configured tool servers over stdio, SSE, streamable
HTTP or websocket transports and exposes their tools to the registry.
"""

from agent_runtime.mcp.client import MCPClientWrapper
from agent_runtime.mcp.discovery import discover_mcp_tools, servers_with_command
from agent_runtime.mcp.tool import RemoteDiscoveredTool

__all__ = [
    "MCPClientWrapper",
    "RemoteDiscoveredTool",
    "discover_mcp_tools",
    "servers_with_command",
]
