"""Load and validate remote tool-server configuration from YAML.

File layout::

    mcp_servers:
      github:
        command: npx
        args: ["-y", "@modelcontextprotocol/server-github"]
        env: {GITHUB_TOKEN: "..."}
      search:
        http_url: https://tools.example.com/mcp
        headers: {X-Team: infra}
        trust: true
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from agent_runtime.config.loader import ConfigLoadError, load_yaml_file
from agent_runtime.config.server_models import MCPServerConfig

log = structlog.get_logger(__name__)


class ServerConfigError(ConfigLoadError):
    """Raised when tool-server configuration cannot be loaded or validated."""

    pass


def load_mcp_servers_config(config_file: Path | str) -> dict[str, MCPServerConfig]:
    """Load and validate tool-server configuration from a YAML file.

    Args:
        config_file: Path to the YAML file.

    Returns:
        Validated server configurations keyed by server name.

    Raises:
        ServerConfigError: If the file cannot be loaded or validated. Error
            messages name the offending server and field.

    Example:
        >>> servers = load_mcp_servers_config("config/mcp_servers.yaml")
        >>> servers["github"].transport
        'stdio'
    """
    config_path = Path(config_file)
    log.info("loading_mcp_servers_config", config_file=str(config_path))

    data = load_yaml_file(config_path, error_class=ServerConfigError)
    raw_servers: Any = data.get("mcp_servers", {})
    if not isinstance(raw_servers, dict):
        raise ServerConfigError(
            f"'mcp_servers' in {config_path} must be a mapping of server name to settings"
        )

    servers: dict[str, MCPServerConfig] = {}
    error_messages: list[str] = []
    for server_name, server_data in raw_servers.items():
        try:
            servers[str(server_name)] = MCPServerConfig.model_validate(server_data or {})
        except ValidationError as e:
            # Format validation errors for better debugging
            for error in e.errors():
                field_path = " -> ".join(
                    [str(server_name), *(str(loc) for loc in error["loc"])]
                )
                error_messages.append(f"{field_path}: {error['msg']}")

    if error_messages:
        error_summary = "\n".join(error_messages)
        raise ServerConfigError(
            f"Tool server configuration validation failed:\n{error_summary}"
        ) from None

    log.info("mcp_servers_config_loaded", servers_count=len(servers), servers=sorted(servers))
    return servers
