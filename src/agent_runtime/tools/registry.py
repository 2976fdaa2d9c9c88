"""Tool registry for tool discovery and registration.

This module provides the ToolRegistry class that maps tool names to tool
instances (built-in, subprocess-discovered and server-discovered), owns the
process-wide server/tool allowlist, and drives discovery.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from agent_runtime.telemetry import TOOL_OVERWRITTEN, TOOL_REGISTERED, TOOLS_DISCOVERED, get_logger
from agent_runtime.tools.builtin import BuiltinTool, ConfirmFunction
from agent_runtime.tools.discovered import SubprocessDiscoveredTool, discover_subprocess_tools
from agent_runtime.tools.types import DiscoveryError, Tool, ToolDefinition

if TYPE_CHECKING:
    from agent_runtime.config.settings import AppConfig
    from agent_runtime.mcp.client import MCPClientWrapper

log = get_logger(__name__)


class ToolRegistry:
    """Central registry of available tools.

    Registration is last-write-wins: registering a name twice replaces the
    earlier tool and logs a warning.

    Attributes:
        allowlist: Server names and ``server.tool`` keys a human chose to
            always allow. Shared by reference with every remote tool.
    """

    def __init__(self, config: "AppConfig | None" = None) -> None:
        """Initialize empty tool registry.

        Args:
            config: Application settings supplying the discovery commands and
                server configuration. Without it discovery is a no-op.
        """
        self.config = config
        self._tools: dict[str, Tool] = {}
        self.allowlist: set[str] = set()
        self._mcp_clients: dict[str, "MCPClientWrapper"] = {}
        log.debug("tool_registry_initialized")

    def register_tool(self, tool: Tool) -> None:
        """Register a tool instance under its name.

        Args:
            tool: Any object satisfying the ``Tool`` protocol.
        """
        if tool.name in self._tools:
            log.warning(TOOL_OVERWRITTEN, tool_name=tool.name)
        self._tools[tool.name] = tool
        log.debug(TOOL_REGISTERED, tool_name=tool.name, tool_type=type(tool).__name__)

    def register(
        self,
        tool_def: ToolDefinition,
        executor: Callable[..., Any],
        *,
        confirm: ConfirmFunction | None = None,
    ) -> BuiltinTool:
        """Register a tool with its definition and executor function.

        Args:
            tool_def: Tool definition with metadata.
            executor: Callable that executes the tool. Should accept tool
                parameters as keyword arguments and return a dict, a string
                or a ToolResult.
            confirm: Optional confirmation callable, see ``BuiltinTool``.

        Returns:
            The registered BuiltinTool.
        """
        tool = BuiltinTool(tool_def, executor, confirm=confirm)
        self.register_tool(tool)
        return tool

    def get_tool(self, name: str) -> Tool | None:
        """Retrieve a tool by name, or None if not registered."""
        return self._tools.get(name)

    def get_all_tools(self) -> list[Tool]:
        """All registered and discovered tools, in registration order."""
        return list(self._tools.values())

    def list_tool_names(self) -> list[str]:
        """List names of all registered tools.

        Returns:
            List of tool names.
        """
        return list(self._tools.keys())

    def get_function_declarations(self) -> list[dict[str, Any]]:
        """Function declarations of every tool, as sent to the model."""
        return [tool.schema for tool in self._tools.values()]

    def get_tools_by_server(self, server_name: str) -> list[Tool]:
        """Tools discovered from a specific tool server."""
        return [
            tool
            for tool in self._tools.values()
            if getattr(tool, "server_name", None) == server_name
        ]

    def _remove_discovered_tools(self, *, remote: bool) -> None:
        from agent_runtime.mcp.tool import RemoteDiscoveredTool  # noqa: PLC0415

        discovered_types: tuple[type, ...] = (SubprocessDiscoveredTool,)
        if remote:
            discovered_types += (RemoteDiscoveredTool,)
        for name in [n for n, t in self._tools.items() if isinstance(t, discovered_types)]:
            del self._tools[name]

    def _register_subprocess_tools(self) -> int:
        if self.config is None or not self.config.tool_discovery_command:
            return 0
        try:
            tools = discover_subprocess_tools(
                self.config.tool_discovery_command, self.config.tool_call_command or ""
            )
        except DiscoveryError:
            log.error("subprocess_discovery_skipped", exc_info=True)
            return 0
        for tool in tools:
            self.register_tool(tool)
        return len(tools)

    def discover_subprocess_tools(self) -> None:
        """Refresh only the subprocess-discovered tools."""
        self._remove_discovered_tools(remote=False)
        count = self._register_subprocess_tools()
        log.info(TOOLS_DISCOVERED, source="subprocess", count=count)

    async def discover_tools(self) -> None:
        """Discover tools from the project and from configured tool servers.

        Previously discovered tools are removed first; manually registered
        tools are kept. Can be called multiple times. A failing source is
        logged and contributes no tools.
        """
        from agent_runtime.mcp.discovery import discover_mcp_tools  # noqa: PLC0415
        from agent_runtime.mcp.tool import RemoteDiscoveredTool  # noqa: PLC0415

        self._remove_discovered_tools(remote=True)
        await self.close()

        subprocess_count = self._register_subprocess_tools()

        remote_count = 0
        if self.config is not None:
            self._mcp_clients = await discover_mcp_tools(
                self, self.config.mcp_servers, self.config.mcp_server_command
            )
            # Earlier remote tools were removed above, so every one left is new.
            remote_count = sum(
                isinstance(tool, RemoteDiscoveredTool) for tool in self._tools.values()
            )

        log.info(
            TOOLS_DISCOVERED,
            subprocess_tools=subprocess_count,
            remote_tools=remote_count,
            total_tools=len(self._tools),
        )

    async def close(self) -> None:
        """Disconnect every tool server client kept open for remote tools."""
        clients, self._mcp_clients = self._mcp_clients, {}
        for server_name, client in clients.items():
            try:
                await client.disconnect()
            except Exception:
                log.warning("mcp_client_close_failed", server_name=server_name, exc_info=True)
