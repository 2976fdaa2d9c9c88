"""Discovery of tools from configured tool servers.

Every configured server is connected concurrently. A server that fails to
connect or list its tools is logged and contributes no tools; it never
affects discovery of the other servers.
"""

import asyncio
from typing import TYPE_CHECKING, Any

from agent_runtime.config.server_models import MCPServerConfig
from agent_runtime.config.validators import split_command_line
from agent_runtime.mcp.client import MCPClientWrapper
from agent_runtime.mcp.tool import RemoteDiscoveredTool
from agent_runtime.mcp.types import clean_input_schema, sanitize_tool_name
from agent_runtime.telemetry import (
    MCP_SERVER_DISCOVERY_FAILED,
    MCP_SERVER_NO_TOOLS,
    MCP_TOOL_DISCOVERED,
    get_logger,
)
from agent_runtime.tools.types import DiscoveryError

if TYPE_CHECKING:
    from agent_runtime.tools.registry import ToolRegistry

log = get_logger(__name__)

# Server name given to the single server configured by ``mcp_server_command``.
COMMAND_SERVER_NAME = "mcp"


def servers_with_command(
    servers: dict[str, MCPServerConfig], mcp_server_command: str | None
) -> dict[str, MCPServerConfig]:
    """Merge the ``mcp_server_command`` shorthand into the server map.

    The command line is parsed with shell quoting rules into a stdio server
    named ``mcp``, replacing any server already configured under that name.

    Raises:
        DiscoveryError: If the command line cannot be parsed.
    """
    merged = dict(servers)
    if mcp_server_command:
        try:
            argv = split_command_line(mcp_server_command)
        except ValueError as e:
            raise DiscoveryError(f"failed to parse mcp_server_command: {mcp_server_command}") from e
        merged[COMMAND_SERVER_NAME] = MCPServerConfig(command=argv[0], args=argv[1:])
    return merged


def _registry_name(
    server_tool_name: str, server_name: str, registry: "ToolRegistry", qualify: bool
) -> str:
    name = sanitize_tool_name(server_tool_name)
    if qualify or registry.get_tool(name) is not None:
        name = sanitize_tool_name(f"{server_name}.{server_tool_name}")
    return name


async def _connect_and_discover(
    server_name: str,
    config: MCPServerConfig,
    registry: "ToolRegistry",
    qualify: bool,
) -> MCPClientWrapper | None:
    """Connect one server and register its tools.

    Returns:
        The connected client when at least one tool was registered, else None
        (the connection is closed).
    """
    client = MCPClientWrapper(server_name, config)
    try:
        await client.connect()
        tools = await client.list_tools()
    except Exception as e:
        log.error(
            MCP_SERVER_DISCOVERY_FAILED,
            server_name=server_name,
            transport=config.transport,
            error=str(e),
            error_type=type(e).__name__,
        )
        await client.disconnect()
        return None

    registered = 0
    for server_tool in tools:
        server_tool_name = server_tool.get("name")
        if not server_tool_name:
            log.warning("mcp_tool_without_name_skipped", server_name=server_name)
            continue
        if not config.is_tool_enabled(server_tool_name):
            log.debug("mcp_tool_filtered", server_name=server_name, tool=server_tool_name)
            continue

        tool = RemoteDiscoveredTool(
            client,
            server_name,
            _registry_name(server_tool_name, server_name, registry, qualify),
            server_tool.get("description") or "",
            clean_input_schema(server_tool.get("inputSchema")),
            server_tool_name,
            allowlist=registry.allowlist,
            trust=config.trust,
        )
        registry.register_tool(tool)
        registered += 1
        log.debug(
            MCP_TOOL_DISCOVERED,
            server_name=server_name,
            tool=server_tool_name,
            registry_name=tool.name,
        )

    if registered == 0:
        log.info(MCP_SERVER_NO_TOOLS, server_name=server_name)
        await client.disconnect()
        return None
    return client


async def discover_mcp_tools(
    registry: "ToolRegistry",
    servers: dict[str, MCPServerConfig],
    mcp_server_command: str | None = None,
) -> dict[str, MCPClientWrapper]:
    """Connect every configured server and register its tools.

    Tools keep their server-side name when exactly one server is configured
    and the name is free; otherwise they are registered as ``server.tool``.

    Args:
        registry: Registry receiving the discovered tools.
        servers: Configured servers by name.
        mcp_server_command: Optional command line for one extra stdio server.

    Returns:
        Connected clients of servers that contributed tools, by server name.
    """
    try:
        all_servers = servers_with_command(servers, mcp_server_command)
    except DiscoveryError:
        log.error(MCP_SERVER_DISCOVERY_FAILED, server_name=COMMAND_SERVER_NAME, exc_info=True)
        all_servers = dict(servers)

    if not all_servers:
        return {}

    qualify = len(all_servers) > 1
    names = list(all_servers)
    results: list[Any] = await asyncio.gather(
        *(_connect_and_discover(name, all_servers[name], registry, qualify) for name in names)
    )
    return {name: client for name, client in zip(names, results) if client is not None}
