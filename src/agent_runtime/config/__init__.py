"""Unified configuration management for the agent runtime.

This module provides a single source of truth for all configuration,
integrating environment variables, .env files, YAML files, and defaults.
"""

from agent_runtime.config.env_loader import Environment, get_environment, load_env_files
from agent_runtime.config.loader import ConfigLoadError, load_yaml_file
from agent_runtime.config.server_models import (
    MCP_DEFAULT_TIMEOUT_SECONDS,
    MCPOAuthConfig,
    MCPServerConfig,
)
from agent_runtime.config.servers_loader import ServerConfigError, load_mcp_servers_config
from agent_runtime.config.settings import (
    AppConfig,
    get_settings,
    load_app_config,
    reset_settings,
)

__all__ = [
    # App-level settings
    "AppConfig",
    "get_settings",
    "load_app_config",
    "reset_settings",
    "Environment",
    "get_environment",
    "load_env_files",
    # Tool servers
    "MCPServerConfig",
    "MCPOAuthConfig",
    "MCP_DEFAULT_TIMEOUT_SECONDS",
    # Configuration loaders
    "load_yaml_file",
    "load_mcp_servers_config",
    # Exception classes
    "ConfigLoadError",
    "ServerConfigError",
]
