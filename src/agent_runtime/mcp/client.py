"""MCP client wrapper over stdio, SSE, streamable HTTP and websocket transports.

This wrapper uses the MCP SDK's transport context managers, which handle the
subprocess or connection lifecycle automatically.
"""

import asyncio
import json
import os
from datetime import timedelta
from typing import Any
from urllib.parse import urlencode, urlparse, urlunparse

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.client.websocket import websocket_client
from mcp.types import CallToolResult

from agent_runtime.config.server_models import MCPServerConfig
from agent_runtime.telemetry import (
    MCP_SERVER_CONNECTED,
    MCP_SERVER_CONNECTING,
    MCP_SERVER_DISCONNECTED,
    get_logger,
)

log = get_logger(__name__)


class MCPClientWrapper:
    """Wraps the MCP SDK client for one configured server.

    Uses the SDK's context manager pattern - the SDK handles:
    - Subprocess creation and cleanup (stdio)
    - HTTP / websocket connection management (remote transports)
    - Message framing on the read and write streams

    Usage:
        async with MCPClientWrapper("files", MCPServerConfig(command="mcp-files")) as client:
            tools = await client.list_tools()
            result = await client.call_tool("tool_name", {"arg": "value"})
    """

    def __init__(self, server_name: str, config: MCPServerConfig):
        """Initialize MCP client wrapper.

        Args:
            server_name: Name the server is configured under.
            config: Transport and timeout settings.
        """
        self.server_name = server_name
        self.config = config
        self.timeout = config.timeout
        self.session: ClientSession | None = None
        self._client_context: Any = None

    @property
    def connected(self) -> bool:
        return self.session is not None

    def _open_transport(self) -> Any:
        """Create the SDK transport context manager for the configured transport."""
        config = self.config
        transport = config.transport
        if transport == "streamable_http":
            return streamablehttp_client(
                config.http_url, headers=config.request_headers(), timeout=self.timeout
            )
        if transport == "sse":
            return sse_client(
                self._sse_url(), headers=config.request_headers(), timeout=self.timeout
            )
        if transport == "websocket":
            url = config.tcp or ""
            if not url.startswith(("ws://", "wss://")):
                url = f"ws://{url}"
            return websocket_client(url)

        server_params = StdioServerParameters(
            command=config.command or "",
            args=list(config.args),
            # Server env extends the current environment
            env={**os.environ, **config.env} if config.env else None,
            cwd=config.cwd,
        )
        return stdio_client(server_params)

    def _sse_url(self) -> str:
        """SSE URL, with the access token as a query parameter when configured."""
        oauth = self.config.oauth
        url = self.config.url or ""
        if not (oauth and oauth.enabled and oauth.access_token and oauth.token_param_name):
            return url
        parsed = urlparse(url)
        query = urlencode({oauth.token_param_name: oauth.access_token})
        return urlunparse(parsed._replace(query=f"{parsed.query}&{query}" if parsed.query else query))

    async def connect(self) -> "MCPClientWrapper":
        """Open the transport and perform the MCP handshake.

        Returns:
            Self, connected.
        """
        try:
            log.info(
                MCP_SERVER_CONNECTING,
                server_name=self.server_name,
                transport=self.config.transport,
            )

            self._client_context = self._open_transport()
            # Streamable HTTP also yields a session-id getter
            streams = await self._client_context.__aenter__()
            read_stream, write_stream = streams[0], streams[1]

            self.session = ClientSession(
                read_stream, write_stream, read_timeout_seconds=timedelta(seconds=self.timeout)
            )
            await asyncio.wait_for(self.session.__aenter__(), timeout=self.timeout)

            # Initialize session (handshake)
            await asyncio.wait_for(self.session.initialize(), timeout=self.timeout)

            log.info(MCP_SERVER_CONNECTED, server_name=self.server_name)
            return self

        except asyncio.TimeoutError:
            log.error("mcp_client_timeout", server_name=self.server_name, timeout=self.timeout)
            await self.disconnect()
            raise
        except Exception as e:
            log.error(
                "mcp_client_connect_failed",
                server_name=self.server_name,
                error=str(e),
                exc_info=True,
            )
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        """Close the session and the transport. Safe to call more than once."""
        if self.session is None and self._client_context is None:
            return
        try:
            # Close session - use None for clean exit even if there was an exception
            # This avoids anyio cancel scope issues when exiting after timeout
            if self.session:
                try:
                    await self.session.__aexit__(None, None, None)
                except RuntimeError as e:
                    if "cancel scope" in str(e):
                        log.debug("mcp_session_cleanup_cancel_scope_ignored", error=str(e))
                    else:
                        raise
                finally:
                    self.session = None

            if self._client_context:
                try:
                    await self._client_context.__aexit__(None, None, None)
                except RuntimeError as e:
                    if "cancel scope" in str(e):
                        log.debug("mcp_client_cleanup_cancel_scope_ignored", error=str(e))
                    else:
                        raise
                finally:
                    self._client_context = None

            log.info(MCP_SERVER_DISCONNECTED, server_name=self.server_name)

        except Exception as e:
            log.error(
                "mcp_client_disconnect_error",
                server_name=self.server_name,
                error=str(e),
                exc_info=True,
            )

    async def __aenter__(self) -> "MCPClientWrapper":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def list_tools(self) -> list[dict[str, Any]]:
        """List available tools from the server.

        Returns:
            List of tool schemas (MCP format: name, description, inputSchema).

        Raises:
            RuntimeError: If client not connected.
        """
        if not self.session:
            raise RuntimeError("MCP client not connected - call connect() first")

        try:
            result = await asyncio.wait_for(self.session.list_tools(), timeout=self.timeout)
            tools = [tool.model_dump() for tool in result.tools]
            log.debug("mcp_tools_listed", server_name=self.server_name, count=len(tools))
            return tools

        except asyncio.TimeoutError:
            log.error("mcp_list_tools_timeout", server_name=self.server_name, timeout=self.timeout)
            raise

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Call a tool on the server.

        Args:
            name: Tool name as the server knows it.
            arguments: Tool arguments.

        Returns:
            The raw call result; ``isError`` results are returned, not raised.

        Raises:
            RuntimeError: If client not connected.
        """
        if not self.session:
            raise RuntimeError("MCP client not connected - call connect() first")

        log.info("mcp_tool_calling", server_name=self.server_name, tool=name)
        # Timeout is applied by the session read timeout.
        # asyncio.wait_for causes anyio cancel scope conflicts with the MCP SDK
        result = await self.session.call_tool(name, arguments)
        log.info(
            "mcp_tool_response_received",
            server_name=self.server_name,
            tool=name,
            is_error=bool(result.isError),
        )
        return result

    def parse_result(self, result: CallToolResult) -> Any:
        """Parsed payload of a successful call result.

        ``structuredContent`` wins over content items when present.
        """
        if result.structuredContent:
            return result.structuredContent
        if not result.content:
            log.warning("mcp_tool_empty_content", server_name=self.server_name)
            return []
        return self._parse_mcp_content(result.content)

    @staticmethod
    def extract_error_message(result: CallToolResult) -> str:
        """Extract error message from CallToolResult.

        Args:
            result: CallToolResult with isError=True.

        Returns:
            Error message string.
        """
        texts = [item.text for item in result.content or [] if hasattr(item, "text")]
        if texts:
            return "\n".join(texts)
        return "Unknown tool error"

    def _parse_mcp_content(self, content: list) -> Any:
        """Parse MCP content items.

        MCP results can contain multiple content types:
        - TextContent: Plain text (may be JSON)
        - ImageContent: Base64 encoded image
        - AudioContent: Audio data
        - ResourceLink: Link to a resource
        - EmbeddedResource: Embedded resource data

        Args:
            content: List of MCP content items.

        Returns:
            Parsed content. If single text item, returns parsed JSON or string.
            If multiple items, returns list of parsed items.
        """
        parsed_items = []
        for item in content:
            # TextContent (most common)
            if hasattr(item, "text"):
                text = item.text
                try:
                    parsed_items.append(json.loads(text))
                except (json.JSONDecodeError, TypeError):
                    parsed_items.append(text)

            # ImageContent or AudioContent (has data attribute)
            elif hasattr(item, "data"):
                parsed_items.append(
                    {"type": "binary", "mime_type": getattr(item, "mimeType", None), "data": item.data}
                )

            # ResourceLink (has uri)
            elif hasattr(item, "uri"):
                parsed_items.append({"type": "resource_link", "uri": str(item.uri)})

            # EmbeddedResource (has resource)
            elif hasattr(item, "resource"):
                resource = item.resource
                uri = getattr(resource, "uri", None)
                parsed_items.append(
                    {
                        "type": "embedded_resource",
                        "uri": str(uri) if uri is not None else None,
                        "text": getattr(resource, "text", None),
                        "blob": getattr(resource, "blob", None),
                    }
                )

            else:
                log.warning("mcp_unknown_content_type", item_type=type(item).__name__)
                parsed_items.append(str(item))

        if len(parsed_items) == 1:
            return parsed_items[0]
        return parsed_items
