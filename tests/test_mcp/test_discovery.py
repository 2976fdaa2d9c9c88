"""Tests for tool-server discovery."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agent_runtime.config.server_models import MCPServerConfig
from agent_runtime.mcp.discovery import (
    COMMAND_SERVER_NAME,
    discover_mcp_tools,
    servers_with_command,
)
from agent_runtime.mcp.tool import RemoteDiscoveredTool
from agent_runtime.tools.registry import ToolRegistry
from agent_runtime.tools.types import DiscoveryError, ToolDefinition


class FakeClients:
    """Stands in for MCPClientWrapper, recording each created client."""

    def __init__(self, tools: dict[str, list[dict]], failing: tuple[str, ...] = ()) -> None:
        self.tools = tools
        self.failing = failing
        self.created: dict[str, MagicMock] = {}
        self.configs: dict[str, MCPServerConfig] = {}

    def __call__(self, server_name: str, config: MCPServerConfig) -> MagicMock:
        client = MagicMock()
        client.server_name = server_name
        client.connect = AsyncMock(
            side_effect=ConnectionError("refused") if server_name in self.failing else None
        )
        client.list_tools = AsyncMock(return_value=self.tools.get(server_name, []))
        client.disconnect = AsyncMock()
        self.created[server_name] = client
        self.configs[server_name] = config
        return client


def _stdio(command: str = "srv", **kwargs) -> MCPServerConfig:
    return MCPServerConfig(command=command, **kwargs)


def _server_tool(name: str, **schema) -> dict:
    return {
        "name": name,
        "description": f"{name} tool",
        "inputSchema": {"type": "object", "properties": {}, **schema},
    }


@pytest.mark.asyncio
async def test_single_server_keeps_plain_names() -> None:
    """Test tools of the only server keep their server-side names."""
    registry = ToolRegistry()
    fake = FakeClients({"files": [_server_tool("read"), _server_tool("write")]})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        clients = await discover_mcp_tools(registry, {"files": _stdio()})

    assert registry.list_tool_names() == ["read", "write"]
    assert clients == {"files": fake.created["files"]}
    tool = registry.get_tool("read")
    assert isinstance(tool, RemoteDiscoveredTool)
    assert tool.server_tool_name == "read"
    assert tool.allowlist is registry.allowlist


@pytest.mark.asyncio
async def test_several_servers_qualify_names() -> None:
    """Test tools are registered as server.tool when several servers exist."""
    registry = ToolRegistry()
    fake = FakeClients({"files": [_server_tool("read")], "git": [_server_tool("status")]})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {"files": _stdio(), "git": _stdio()})

    assert sorted(registry.list_tool_names()) == ["files.read", "git.status"]
    assert registry.get_tools_by_server("git")[0].server_tool_name == "status"


@pytest.mark.asyncio
async def test_name_collision_qualifies() -> None:
    """Test a server tool clashing with a registered tool is qualified."""
    registry = ToolRegistry()
    registry.register(ToolDefinition(name="read_file", description="local"), lambda: "")
    fake = FakeClients({"files": [_server_tool("read_file")]})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {"files": _stdio()})

    assert registry.list_tool_names() == ["read_file", "files.read_file"]


@pytest.mark.asyncio
async def test_failing_server_does_not_affect_others() -> None:
    """Test one unreachable server contributes no tools and others still register."""
    registry = ToolRegistry()
    fake = FakeClients(
        {"files": [_server_tool("read")], "broken": [_server_tool("x")]}, failing=("broken",)
    )

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        clients = await discover_mcp_tools(registry, {"files": _stdio(), "broken": _stdio()})

    assert registry.list_tool_names() == ["files.read"]
    assert set(clients) == {"files"}
    fake.created["broken"].disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_server_without_tools_is_disconnected() -> None:
    """Test a server contributing no tools is closed and not kept."""
    registry = ToolRegistry()
    fake = FakeClients({"empty": []})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        clients = await discover_mcp_tools(registry, {"empty": _stdio()})

    assert clients == {}
    fake.created["empty"].disconnect.assert_awaited_once()


@pytest.mark.asyncio
async def test_include_exclude_filters() -> None:
    """Test per-server include and exclude lists filter tools."""
    registry = ToolRegistry()
    fake = FakeClients(
        {"files": [_server_tool("read"), _server_tool("write"), _server_tool("delete")]}
    )
    config = _stdio(include_tools=["read", "delete"], exclude_tools=["delete"])

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {"files": config})

    assert registry.list_tool_names() == ["read"]


@pytest.mark.asyncio
async def test_schema_cleaned_and_trust_applied() -> None:
    """Test input schemas are cleaned and server trust reaches the tools."""
    registry = ToolRegistry()
    fake = FakeClients(
        {"files": [_server_tool("read", additionalProperties=False, **{"$schema": "x"})]}
    )

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {"files": _stdio(trust=True)})

    tool = registry.get_tool("read")
    assert tool.schema["parameters"] == {"type": "object", "properties": {}}
    assert tool.trust is True


@pytest.mark.asyncio
async def test_no_servers() -> None:
    """Test discovery without servers does nothing."""
    assert await discover_mcp_tools(ToolRegistry(), {}) == {}


@pytest.mark.asyncio
async def test_server_command_registers_stdio_server() -> None:
    """Test the command shorthand is parsed into a stdio server named mcp."""
    registry = ToolRegistry()
    fake = FakeClients({COMMAND_SERVER_NAME: [_server_tool("ping")]})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {}, "node 'my server.js' --port 1")

    config = fake.configs[COMMAND_SERVER_NAME]
    assert config.command == "node"
    assert config.args == ["my server.js", "--port", "1"]
    assert registry.list_tool_names() == ["ping"]


@pytest.mark.asyncio
async def test_unparsable_server_command_skipped() -> None:
    """Test a bad command line is logged and configured servers still load."""
    registry = ToolRegistry()
    fake = FakeClients({"files": [_server_tool("read")]})

    with patch("agent_runtime.mcp.discovery.MCPClientWrapper", new=fake):
        await discover_mcp_tools(registry, {"files": _stdio()}, "node 'unterminated")

    assert set(fake.created) == {"files"}
    assert registry.list_tool_names() == ["read"]


def test_servers_with_command_replaces_existing_entry() -> None:
    """Test the shorthand overrides a configured server named mcp."""
    merged = servers_with_command({COMMAND_SERVER_NAME: _stdio("old")}, "new --flag")
    assert merged[COMMAND_SERVER_NAME].command == "new"
    assert merged[COMMAND_SERVER_NAME].args == ["--flag"]


def test_servers_with_command_parse_error() -> None:
    """Test unbalanced quotes raise DiscoveryError."""
    with pytest.raises(DiscoveryError):
        servers_with_command({}, "run 'oops")
