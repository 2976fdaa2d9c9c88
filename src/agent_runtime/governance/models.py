"""Models for shell command governance.

This module defines the inputs and verdicts of the shell command safety
policy:
- ShellPolicyConfig: allow/block lists the policy evaluates against
- PermissionResult: admit/reject verdict with a user-facing reason
- CommandPermissions: per-segment report used by confirmation flows
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from agent_runtime.config.settings import AppConfig

SHELL_TOOL_NAMES = ("run_shell_command", "ShellTool")


class PermissionResult:
    """Result of a permission check."""

    def __init__(self, allowed: bool, reason: str = "") -> None:
        """Initialize permission result.

        Args:
            allowed: Whether permission is granted.
            reason: Reason for denial (if not allowed).
        """
        self.allowed = allowed
        self.reason = reason

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        return f"PermissionResult(allowed={self.allowed!r}, reason={self.reason!r})"


class ShellPolicyConfig(BaseModel):
    """Allow and block lists consulted by the shell command policy.

    Entries are either a bare tool name (``run_shell_command`` or
    ``ShellTool``, matching every command) or ``Tool(prefix)`` matching
    commands that start with ``prefix`` as a whole word. Entries naming other
    tools are carried along but ignored by the policy.
    """

    model_config = ConfigDict(frozen=True)

    core_tools: list[str] | None = Field(
        None, description="Allow list; None means no allow list is configured"
    )
    exclude_tools: list[str] = Field(default_factory=list, description="Block list")

    @classmethod
    def from_app_config(cls, config: "AppConfig") -> "ShellPolicyConfig":
        """Build the policy configuration from application settings."""
        return cls(core_tools=config.core_tools, exclude_tools=config.exclude_tools)

    @property
    def shell_globally_disabled(self) -> bool:
        """A bare shell tool name in the block list disables the tool."""
        return any(name in self.exclude_tools for name in SHELL_TOOL_NAMES)

    @property
    def wildcard_allowed(self) -> bool:
        """A bare shell tool name in the allow list admits any command."""
        return self.core_tools is not None and any(
            name in self.core_tools for name in SHELL_TOOL_NAMES
        )

    @property
    def strict_allowlist(self) -> bool:
        """Whether every segment must match an allowed command prefix."""
        return self.core_tools is not None and not self.wildcard_allowed


class CommandPermissions(BaseModel):
    """Detailed permission report for a (possibly chained) command.

    Attributes:
        all_allowed: Every segment may run without further confirmation.
        disallowed_commands: Normalized segments that were not admitted.
        block_reason: User-facing reason when not all segments are admitted.
        is_hard_denial: True when a segment hit the block list (or the command
            uses substitution); such commands must never run, even after
            confirmation.
    """

    all_allowed: bool
    disallowed_commands: list[str] = Field(default_factory=list)
    block_reason: str | None = None
    is_hard_denial: bool = False
