"""Tools discovered from remote tool servers."""

from typing import Any, Literal

from agent_runtime.mcp.client import MCPClientWrapper
from agent_runtime.mcp.types import format_result_for_display
from agent_runtime.telemetry import ALLOWLIST_UPDATED, get_logger
from agent_runtime.tools.types import (
    CancellationToken,
    ToolCallConfirmationDetails,
    ToolConfirmationOutcome,
    ToolError,
    ToolMcpConfirmationDetails,
    ToolResult,
)

log = get_logger(__name__)


class RemoteDiscoveredTool:
    """A tool served by a connected tool server.

    ``name`` is the registry name exposed to the model (possibly
    ``server.tool``); ``server_tool_name`` is the name the server knows.
    The allowlist is owned by the registry and shared by reference, so a
    "proceed always" decision on one tool applies to its siblings.
    """

    def __init__(
        self,
        client: MCPClientWrapper,
        server_name: str,
        name: str,
        description: str,
        parameter_schema: dict[str, Any],
        server_tool_name: str,
        *,
        allowlist: set[str],
        trust: bool = False,
    ) -> None:
        self.client = client
        self.server_name = server_name
        self._name = name
        self._description = description
        self.parameter_schema = parameter_schema
        self.server_tool_name = server_tool_name
        self.allowlist = allowlist
        self.trust = trust

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return f"{self.server_tool_name} ({self.server_name} MCP Server)"

    @property
    def description(self) -> str:
        return self._description

    @property
    def schema(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "description": self._description,
            "parameters": self.parameter_schema,
        }

    @property
    def tool_allowlist_key(self) -> str:
        return f"{self.server_name}.{self.server_tool_name}"

    async def should_confirm_execute(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolCallConfirmationDetails | Literal[False]:
        if self.trust:
            return False
        if self.server_name in self.allowlist or self.tool_allowlist_key in self.allowlist:
            return False

        async def on_confirm(outcome: ToolConfirmationOutcome) -> None:
            if outcome == ToolConfirmationOutcome.PROCEED_ALWAYS_SERVER:
                key = self.server_name
            elif outcome == ToolConfirmationOutcome.PROCEED_ALWAYS_TOOL:
                key = self.tool_allowlist_key
            else:
                return
            self.allowlist.add(key)
            log.info(ALLOWLIST_UPDATED, key=key, server_name=self.server_name)

        return ToolMcpConfirmationDetails(
            title="Confirm MCP Tool Execution",
            server_name=self.server_name,
            tool_name=self.server_tool_name,
            tool_display_name=self._name,
            on_confirm=on_confirm,
        )

    async def execute(self, args: dict[str, Any], token: CancellationToken) -> ToolResult:
        result = await self.client.call_tool(self.server_tool_name, args)

        if result.isError:
            message = self.client.extract_error_message(result)
            log.warning(
                "mcp_tool_returned_error",
                server_name=self.server_name,
                tool=self.server_tool_name,
                error=message,
            )
            return ToolResult(
                llm_content=f"Error: {message}",
                return_display=f"Error: {message}",
                error=ToolError(message=message, type="mcp_tool_error"),
            )

        parsed = self.client.parse_result(result)
        return ToolResult(llm_content=parsed, return_display=format_result_for_display(parsed))

    def __repr__(self) -> str:
        return f"RemoteDiscoveredTool(name={self._name!r}, server={self.server_name!r})"
