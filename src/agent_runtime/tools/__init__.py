"""Tool layer: tool types, built-in tools, discovery and the registry.

This module provides:
- Tool registry for registration and discovery
- Built-in tools (read_file, list_directory, write_file, run_shell_command, web_fetch)
- Subprocess-discovered tools driven by a project discovery command
"""

from typing import TYPE_CHECKING

from agent_runtime.governance import SHELL_TOOL_NAMES, ShellPolicyConfig
from agent_runtime.telemetry import get_logger
from agent_runtime.tools.builtin import BuiltinTool
from agent_runtime.tools.discovered import SubprocessDiscoveredTool
from agent_runtime.tools.filesystem import create_filesystem_tools
from agent_runtime.tools.registry import ToolRegistry
from agent_runtime.tools.shell import SHELL_TOOL_NAME, ShellTool
from agent_runtime.tools.types import (
    CancellationToken,
    DiscoveryError,
    Tool,
    ToolCallRequest,
    ToolConfirmationOutcome,
    ToolDefinition,
    ToolError,
    ToolExecutionError,
    ToolExecutionOutcome,
    ToolInvocationError,
    ToolNotFoundError,
    ToolParameter,
    ToolResult,
)
from agent_runtime.tools.web_fetch import create_web_fetch_tool

if TYPE_CHECKING:
    from agent_runtime.config.settings import AppConfig

log = get_logger(__name__)

__all__ = [
    # Core exports
    "ToolRegistry",
    "Tool",
    "BuiltinTool",
    "ShellTool",
    "SubprocessDiscoveredTool",
    "SHELL_TOOL_NAME",
    "CancellationToken",
    "ToolCallRequest",
    "ToolConfirmationOutcome",
    "ToolDefinition",
    "ToolExecutionOutcome",
    "ToolParameter",
    "ToolResult",
    "ToolError",
    # Errors
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolInvocationError",
    "DiscoveryError",
    # Registration functions
    "is_builtin_enabled",
    "register_builtin_tools",
    "create_tool_registry",
]


def is_builtin_enabled(tool: Tool, config: "AppConfig") -> bool:
    """Whether a built-in tool passes the configured allow and block lists.

    A tool is enabled when no allow list is configured, or when an allow list
    entry names it (by name, display name or shell alias), optionally with an argument
    suffix such as ``run_shell_command(git)``. Naming it in the block list
    always disables it.
    """
    names = {tool.name, tool.display_name}
    if tool.name in SHELL_TOOL_NAMES:
        names.update(SHELL_TOOL_NAMES)
    if any(name in config.exclude_tools for name in names):
        return False
    if config.core_tools is None:
        return True
    return any(
        entry == name or entry.startswith(f"{name}(")
        for entry in config.core_tools
        for name in names
    )


def register_builtin_tools(registry: ToolRegistry, config: "AppConfig") -> None:
    """Register the enabled built-in tools with the registry.

    Args:
        registry: Tool registry to register tools with.
        config: Settings providing the target directory and tool lists.
    """
    builtins: list[Tool] = [
        *create_filesystem_tools(config.target_dir),
        create_web_fetch_tool(),
        ShellTool(ShellPolicyConfig.from_app_config(config), config.target_dir, debug=config.debug),
    ]
    for tool in builtins:
        if is_builtin_enabled(tool, config):
            registry.register_tool(tool)
        else:
            log.debug("builtin_tool_disabled", tool_name=tool.name)


async def create_tool_registry(config: "AppConfig") -> ToolRegistry:
    """Build a registry with built-in tools and run discovery.

    Args:
        config: Application settings.

    Returns:
        Registry holding built-in and discovered tools.
    """
    registry = ToolRegistry(config)
    register_builtin_tools(registry, config)
    await registry.discover_tools()
    return registry
