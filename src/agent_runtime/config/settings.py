"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path
from typing import Annotated, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from agent_runtime.config.env_loader import Environment, get_environment, load_env_files
from agent_runtime.config.server_models import MCPServerConfig
from agent_runtime.config.servers_loader import load_mcp_servers_config
from agent_runtime.config.validators import (
    parse_name_list,
    resolve_path,
    validate_log_level,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Loads configuration from environment variables, .env files and an
    optional YAML file of tool servers. Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        # .env files are loaded manually via env_loader to support
        # environment-specific files with priority order
        env_prefix="AGENT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )
    debug: bool = Field(default=False, alias="APP_DEBUG", description="Debug mode flag")

    # Application
    project_name: str = Field(default="agent-runtime", description="Project name")
    version: str = Field(default="0.1.0", description="Application version")
    target_dir: Path = Field(
        default_factory=Path.cwd, description="Directory the agent operates on"
    )

    # Telemetry
    log_dir: Path | None = Field(
        default=None, description="Directory for JSON log files (None = console only)"
    )
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # Tool selection and shell policy
    core_tools: Annotated[list[str] | None, NoDecode] = Field(
        default=None,
        description=(
            "Allow list of tool names and ShellTool(prefix) entries. "
            "None = every tool and every shell command allowed"
        ),
    )
    exclude_tools: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Block list of tool names and ShellTool(prefix) entries",
    )

    # Subprocess discovery
    tool_discovery_command: str | None = Field(
        default=None, description="Shell command printing a JSON array of tool declarations"
    )
    tool_call_command: str | None = Field(
        default=None, description="Command invoked as '<command> <tool name>' to run a tool"
    )

    # Remote tool servers
    mcp_server_command: str | None = Field(
        default=None, description="Single stdio server command line, registered as server 'mcp'"
    )
    mcp_servers: dict[str, MCPServerConfig] = Field(
        default_factory=dict, description="Remote tool servers keyed by server name (JSON)"
    )
    mcp_servers_config_path: Path | None = Field(
        default=None, description="Optional YAML file with an 'mcp_servers' mapping"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("target_dir", "log_dir", "mcp_servers_config_path", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str | None) -> Path | None:
        """Resolve relative paths to absolute."""
        if v is None or v == "":
            return None
        return resolve_path(v)

    @field_validator("core_tools", "exclude_tools", mode="before")
    @classmethod
    def parse_tool_lists(cls, v: Any) -> Any:
        """Accept JSON arrays or comma-separated strings from the environment."""
        return parse_name_list(v)


_settings: AppConfig | None = None


def load_app_config(**overrides: Any) -> AppConfig:
    """Load and validate application configuration.

    This function:
    1. Loads .env files in priority order (via env_loader)
    2. Creates AppConfig instance (reads from environment variables)
    3. Merges servers from ``mcp_servers_config_path``; servers given via
       ``AGENT_MCP_SERVERS`` win on name clashes
    4. Logs configuration loading using structlog

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
        ServerConfigError: If the server YAML file is invalid.
    """
    log.info("loading_app_config", environment=get_environment().value)

    load_env_files()

    try:
        config = AppConfig(**overrides)
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise

    if config.mcp_servers_config_path is not None:
        file_servers = load_mcp_servers_config(config.mcp_servers_config_path)
        config = config.model_copy(update={"mcp_servers": {**file_servers, **config.mcp_servers}})

    log.info(
        "app_config_loaded",
        environment=config.environment.value,
        debug=config.debug,
        log_level=config.log_level,
        target_dir=str(config.target_dir),
        mcp_servers=sorted(config.mcp_servers),
        subprocess_discovery=config.tool_discovery_command is not None,
    )
    return config


def get_settings() -> AppConfig:
    """Get the application settings singleton.

    Returns:
        AppConfig instance (singleton pattern).
    """
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings`` reloads them."""
    global _settings
    _settings = None
