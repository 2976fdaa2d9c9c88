"""Governance module for shell command safety.

This module provides:
- Allow/block list configuration for the shell tool
- Command splitting, root extraction and substitution detection
- Admission checks returning user-facing reasons
"""

from agent_runtime.governance.models import (
    SHELL_TOOL_NAMES,
    CommandPermissions,
    PermissionResult,
    ShellPolicyConfig,
)
from agent_runtime.governance.shell_policy import (
    check_command_permissions,
    detect_command_substitution,
    get_command_root,
    get_command_roots,
    is_command_allowed,
    split_commands,
    strip_shell_wrapper,
)

__all__ = [
    # Models
    "SHELL_TOOL_NAMES",
    "CommandPermissions",
    "PermissionResult",
    "ShellPolicyConfig",
    # Policy
    "check_command_permissions",
    "detect_command_substitution",
    "get_command_root",
    "get_command_roots",
    "is_command_allowed",
    "split_commands",
    "strip_shell_wrapper",
]
