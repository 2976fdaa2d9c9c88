"""Tests for RemoteDiscoveredTool."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from mcp.types import CallToolResult, TextContent

from agent_runtime.config.server_models import MCPServerConfig
from agent_runtime.mcp.client import MCPClientWrapper
from agent_runtime.mcp.tool import RemoteDiscoveredTool
from agent_runtime.tools.types import (
    CancellationToken,
    ToolConfirmationOutcome,
    ToolMcpConfirmationDetails,
)


@pytest.fixture
def client() -> MCPClientWrapper:
    wrapper = MCPClientWrapper("files", MCPServerConfig(command="mcp-files"))
    wrapper.session = MagicMock()
    wrapper.session.call_tool = AsyncMock()
    return wrapper


def _tool(client: MCPClientWrapper, allowlist: set[str], **kwargs) -> RemoteDiscoveredTool:
    return RemoteDiscoveredTool(
        client,
        "files",
        "files.read",
        "Read a file",
        {"type": "object", "properties": {"path": {"type": "string"}}},
        "read",
        allowlist=allowlist,
        **kwargs,
    )


def test_names_and_schema(client: MCPClientWrapper) -> None:
    """Test registry, display and allowlist names."""
    tool = _tool(client, set())
    assert tool.name == "files.read"
    assert tool.display_name == "read (files MCP Server)"
    assert tool.tool_allowlist_key == "files.read"
    assert tool.schema["name"] == "files.read"
    assert tool.schema["parameters"]["properties"]["path"] == {"type": "string"}


class TestConfirmation:
    """Test trust and allowlist behaviour."""

    @pytest.mark.asyncio
    async def test_trusted_server_never_asks(self, client: MCPClientWrapper) -> None:
        """Test trusted servers skip confirmation."""
        tool = _tool(client, set(), trust=True)
        assert await tool.should_confirm_execute({}, CancellationToken()) is False

    @pytest.mark.asyncio
    async def test_untrusted_asks(self, client: MCPClientWrapper) -> None:
        """Test untrusted servers return MCP confirmation details."""
        details = await _tool(client, set()).should_confirm_execute({}, CancellationToken())
        assert isinstance(details, ToolMcpConfirmationDetails)
        assert details.server_name == "files"
        assert details.tool_name == "read"
        assert details.tool_display_name == "files.read"

    @pytest.mark.asyncio
    async def test_proceed_always_server_covers_siblings(self, client: MCPClientWrapper) -> None:
        """Test a server-wide approval applies to every tool sharing the allowlist."""
        allowlist: set[str] = set()
        tool = _tool(client, allowlist)
        sibling = RemoteDiscoveredTool(
            client, "files", "files.write", "", {}, "write", allowlist=allowlist
        )

        details = await tool.should_confirm_execute({}, CancellationToken())
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ALWAYS_SERVER)

        assert allowlist == {"files"}
        assert await sibling.should_confirm_execute({}, CancellationToken()) is False

    @pytest.mark.asyncio
    async def test_proceed_always_tool_covers_only_that_tool(
        self, client: MCPClientWrapper
    ) -> None:
        """Test a tool approval does not extend to siblings."""
        allowlist: set[str] = set()
        tool = _tool(client, allowlist)
        sibling = RemoteDiscoveredTool(
            client, "files", "files.write", "", {}, "write", allowlist=allowlist
        )

        details = await tool.should_confirm_execute({}, CancellationToken())
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ALWAYS_TOOL)

        assert allowlist == {"files.read"}
        assert await tool.should_confirm_execute({}, CancellationToken()) is False
        assert await sibling.should_confirm_execute({}, CancellationToken())

    @pytest.mark.asyncio
    async def test_proceed_once_leaves_allowlist(self, client: MCPClientWrapper) -> None:
        """Test one-off approvals are not remembered."""
        allowlist: set[str] = set()
        details = await _tool(client, allowlist).should_confirm_execute({}, CancellationToken())
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ONCE)
        assert allowlist == set()


class TestExecute:
    """Test calls forwarded to the server."""

    @pytest.mark.asyncio
    async def test_success(self, client: MCPClientWrapper) -> None:
        """Test the server-side name is called and the result parsed."""
        client.session.call_tool.return_value = CallToolResult(
            content=[TextContent(type="text", text='{"content": "hi"}')]
        )
        result = await _tool(client, set()).execute({"path": "a.txt"}, CancellationToken())

        client.session.call_tool.assert_awaited_once_with("read", {"path": "a.txt"})
        assert result.error is None
        assert result.llm_content == {"content": "hi"}
        assert result.return_display.startswith("```json")

    @pytest.mark.asyncio
    async def test_error_result(self, client: MCPClientWrapper) -> None:
        """Test isError results become domain errors rather than exceptions."""
        client.session.call_tool.return_value = CallToolResult(
            content=[TextContent(type="text", text="no such file")], isError=True
        )
        result = await _tool(client, set()).execute({"path": "x"}, CancellationToken())

        assert result.error is not None
        assert result.error.message == "no such file"
        assert result.llm_content == "Error: no such file"

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self, client: MCPClientWrapper) -> None:
        """Test transport errors are raised for the scheduler to capture."""
        client.session.call_tool.side_effect = ConnectionError("closed")
        with pytest.raises(ConnectionError):
            await _tool(client, set()).execute({}, CancellationToken())
