"""Pydantic models for remote tool-server configuration.

Servers are configured from ``AGENT_MCP_SERVERS`` (JSON) or a YAML file
loaded by ``load_mcp_servers_config``. Each model is immutable once built.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Ten minutes, matching long-running tool servers (builds, test suites).
MCP_DEFAULT_TIMEOUT_SECONDS = 600.0

TransportKind = Literal["stdio", "sse", "streamable_http", "websocket"]


class MCPOAuthConfig(BaseModel):
    """Authentication settings for a remote tool server.

    Only bearer-token style auth is applied by the client; the interactive
    authorization-code fields are carried so that configuration files written
    for other clients validate unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = Field(False, description="Whether auth is applied for this server")
    access_token: str | None = Field(None, description="Static bearer token")
    client_id: str | None = Field(None, description="OAuth client id")
    client_secret: str | None = Field(None, description="OAuth client secret")
    authorization_url: str | None = Field(None, description="Authorization endpoint")
    token_url: str | None = Field(None, description="Token endpoint")
    scopes: list[str] = Field(default_factory=list, description="Requested scopes")
    redirect_uri: str | None = Field(None, description="Redirect URI for the auth flow")
    token_param_name: str | None = Field(
        None, description="Query parameter carrying the token on SSE connections"
    )


class MCPServerConfig(BaseModel):
    """Configuration for one remote tool server.

    Exactly one transport is selected, by precedence: ``http_url`` (streamable
    HTTP), ``url`` (SSE), ``tcp`` (websocket), ``command`` (stdio).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # stdio transport
    command: str | None = Field(None, description="Executable to spawn")
    args: list[str] = Field(default_factory=list, description="Arguments for the command")
    env: dict[str, str] = Field(
        default_factory=dict, description="Extra environment variables for the command"
    )
    cwd: str | None = Field(None, description="Working directory for the command")
    # SSE transport
    url: str | None = Field(None, description="SSE endpoint URL")
    # streamable HTTP transport
    http_url: str | None = Field(None, description="Streamable HTTP endpoint URL")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra HTTP headers (SSE and HTTP transports)"
    )
    # websocket transport
    tcp: str | None = Field(None, description="host:port or ws:// URL of a websocket server")
    # common
    timeout: float = Field(
        MCP_DEFAULT_TIMEOUT_SECONDS, gt=0, description="Per-operation timeout in seconds"
    )
    trust: bool = Field(False, description="Skip confirmation for every tool of this server")
    description: str | None = Field(None, description="Human-readable server description")
    include_tools: list[str] = Field(
        default_factory=list, description="Only expose these tools (empty = all)"
    )
    exclude_tools: list[str] = Field(
        default_factory=list, description="Never expose these tools (wins over include)"
    )
    oauth: MCPOAuthConfig | None = Field(None, description="Authentication settings")

    @model_validator(mode="after")
    def _require_transport(self) -> "MCPServerConfig":
        if not (self.command or self.url or self.http_url or self.tcp):
            raise ValueError("one of command, url, http_url or tcp is required")
        return self

    @property
    def transport(self) -> TransportKind:
        """Transport selected by this configuration."""
        if self.http_url:
            return "streamable_http"
        if self.url:
            return "sse"
        if self.tcp:
            return "websocket"
        return "stdio"

    def request_headers(self) -> dict[str, str]:
        """Headers to send on HTTP-based transports, including auth."""
        headers = dict(self.headers)
        if self.oauth and self.oauth.enabled and self.oauth.access_token:
            headers.setdefault("Authorization", f"Bearer {self.oauth.access_token}")
        return headers

    def is_tool_enabled(self, tool_name: str) -> bool:
        """Apply the include/exclude filters to a server-side tool name."""
        if tool_name in self.exclude_tools:
            return False
        if self.include_tools:
            return tool_name in self.include_tools
        return True
