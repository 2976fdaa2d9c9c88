"""Shell command safety policy.

A narrow parser that decides whether a command line may be handed to a shell,
before any process is spawned. It is not a shell grammar: it understands
enough quoting to find chained commands and unquoted substitutions, which is
what the allow/block lists need.

Evaluation order for ``is_command_allowed``:
1. Strip a leading ``sh -c`` / ``bash -c`` / ``zsh -c`` / ``cmd.exe /c`` wrapper
2. Reject unquoted ``$()``, backtick, ``<()`` and ``>()`` substitutions
3. Reject everything if the shell tool is disabled in the block list
4. Per chained segment: block list first, then the strict allow list
"""

import re
from collections.abc import Iterable

from agent_runtime.governance.models import (
    SHELL_TOOL_NAMES,
    CommandPermissions,
    PermissionResult,
    ShellPolicyConfig,
)

SUBSTITUTION_REASON = (
    "Command substitution using $(), <(), or >() is not allowed for security reasons"
)
GLOBALLY_DISABLED_REASON = "Shell tool is globally disabled in configuration"
NOT_IN_ALLOWLIST_REASON = "Command(s) not in the allowed commands list."
NOT_IN_SESSION_ALLOWLIST_REASON = "Command(s) not on the global or session allowlist."

_SHELL_WRAPPER = re.compile(r"^\s*(?:sh|bash|zsh|cmd\.exe)\s+(?:/c|-c)\s+")
_COMMAND_ROOT = re.compile(r"""^"([^"]+)"|^'([^']+)'|^(\S+)""")
_WHITESPACE = re.compile(r"\s+")


def strip_shell_wrapper(command: str) -> str:
    """Remove a leading shell-wrapper invocation.

    One pair of quotes surrounding the wrapped command is removed as well.

    Args:
        command: Raw command line.

    Returns:
        The wrapped command, or the trimmed input when no wrapper is present.

    Example:
        >>> strip_shell_wrapper('bash -c "ls -l"')
        'ls -l'
    """
    match = _SHELL_WRAPPER.match(command)
    if not match:
        return command.strip()

    inner = command[match.end() :].strip()
    if len(inner) >= 2 and inner[0] == inner[-1] and inner[0] in ("'", '"'):
        inner = inner[1:-1]
    return inner


def split_commands(command: str) -> list[str]:
    """Split a command line on ``&&``, ``||``, ``;``, ``|``, ``&`` and newlines.

    Operators inside single or double quotes are not split on, and a
    backslash keeps the following character attached to the current segment.

    Args:
        command: Command line to split.

    Returns:
        Trimmed, non-empty segments in order.
    """
    segments: list[str] = []
    current: list[str] = []
    in_single = False
    in_double = False
    i = 0
    length = len(command)

    while i < length:
        char = command[i]
        next_char = command[i + 1] if i + 1 < length else ""

        if char == "\\" and i < length - 1:
            current.append(char + next_char)
            i += 2
            continue

        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double

        if in_single or in_double:
            current.append(char)
        elif (char == "&" and next_char == "&") or (char == "|" and next_char == "|"):
            segments.append("".join(current).strip())
            current = []
            i += 1
        elif char in (";", "&", "|", "\n", "\r"):
            segments.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    segments.append("".join(current).strip())
    return [segment for segment in segments if segment]


def get_command_root(command: str) -> str | None:
    """Extract the executable name of a single command.

    A quoted first token is unquoted, and a path is reduced to its last
    component.

    Args:
        command: One command segment.

    Returns:
        Root command name, or None for blank input.

    Example:
        >>> get_command_root("/usr/local/bin/node script.js")
        'node'
    """
    trimmed = command.strip()
    if not trimmed:
        return None

    match = _COMMAND_ROOT.match(trimmed)
    if not match:
        return None
    root = match.group(1) or match.group(2) or match.group(3)
    if not root:
        return None
    return re.split(r"[\\/]", root)[-1] or None


def get_command_roots(command: str) -> list[str]:
    """Root command of every chained segment, in order."""
    if not command:
        return []
    roots = (get_command_root(segment) for segment in split_commands(command))
    return [root for root in roots if root]


def detect_command_substitution(command: str) -> bool:
    """Detect substitutions that a POSIX shell would execute.

    Follows bash quoting rules:
    - Single quotes: everything is literal
    - Double quotes: ``$(...)`` and backticks still execute
    - Unquoted: ``$(...)``, backticks, ``<(...)`` and ``>(...)`` execute
    - A backslash outside single quotes escapes the next character

    Args:
        command: Command line to inspect.

    Returns:
        True if the command contains an executable substitution.
    """
    in_single = False
    in_double = False
    i = 0
    length = len(command)

    while i < length:
        char = command[i]
        next_char = command[i + 1] if i + 1 < length else ""

        if char == "\\" and not in_single:
            i += 2
            continue

        if char == "'" and not in_double:
            in_single = not in_single
        elif char == '"' and not in_single:
            in_double = not in_double
        elif char == "`" and not in_single:
            return True

        if not in_single:
            if char == "$" and next_char == "(":
                return True
            if char in ("<", ">") and next_char == "(" and not in_double:
                return True

        i += 1

    return False


def _normalize(command: str) -> str:
    return _WHITESPACE.sub(" ", command.strip())


def _is_prefixed_by(command: str, prefix: str) -> bool:
    """Whole-word prefix match: ``npm install`` matches ``npm``, ``npminstall`` does not."""
    if not command.startswith(prefix):
        return False
    return len(command) == len(prefix) or command[len(prefix)] == " "


def _extract_commands(entries: Iterable[str]) -> list[str]:
    """Pull the command prefixes out of ``ShellTool(...)`` style entries."""
    commands: list[str] = []
    for entry in entries:
        for tool_name in SHELL_TOOL_NAMES:
            if entry.startswith(f"{tool_name}(") and entry.endswith(")"):
                commands.append(_normalize(entry[len(tool_name) + 1 : -1]))
                break
    return commands


def _matches_any(command: str, prefixes: Iterable[str]) -> bool:
    return any(_is_prefixed_by(command, prefix) for prefix in prefixes)


def is_command_allowed(command: str, config: ShellPolicyConfig) -> PermissionResult:
    """Decide whether a command line may be executed.

    Args:
        command: Raw command line as requested by the model.
        config: Allow and block lists.

    Returns:
        PermissionResult; when rejected, ``reason`` names the offending
        segment or the rule that fired.

    Example:
        >>> cfg = ShellPolicyConfig(core_tools=["ShellTool(echo)"])
        >>> is_command_allowed("echo hello && rm -rf /", cfg).reason
        "Command 'rm -rf /' is not in the allowed commands list"
    """
    command = strip_shell_wrapper(command)

    if detect_command_substitution(command):
        return PermissionResult(allowed=False, reason=SUBSTITUTION_REASON)

    if config.shell_globally_disabled:
        return PermissionResult(allowed=False, reason=GLOBALLY_DISABLED_REASON)

    blocked_commands = _extract_commands(config.exclude_tools)
    allowed_commands = _extract_commands(config.core_tools or [])
    strict = config.strict_allowlist

    for segment in map(_normalize, split_commands(command)):
        if _matches_any(segment, blocked_commands):
            return PermissionResult(
                allowed=False, reason=f"Command '{segment}' is blocked by configuration"
            )
        if strict and not _matches_any(segment, allowed_commands):
            return PermissionResult(
                allowed=False,
                reason=f"Command '{segment}' is not in the allowed commands list",
            )

    return PermissionResult(allowed=True)


def check_command_permissions(
    command: str,
    config: ShellPolicyConfig,
    session_allowlist: set[str] | None = None,
) -> CommandPermissions:
    """Report which segments of a command may run.

    Without a session allowlist the policy is "default allow": only the block
    list and a configured allow list can reject. With one it is "default
    deny": each segment must match the configured allow list or the session
    allowlist. Block-list hits are hard denials in both modes.

    Args:
        command: Raw command line.
        config: Allow and block lists.
        session_allowlist: Command prefixes approved during this session.

    Returns:
        CommandPermissions listing every disallowed segment.
    """
    command = strip_shell_wrapper(command)

    if detect_command_substitution(command):
        return CommandPermissions(
            all_allowed=False,
            disallowed_commands=[command],
            block_reason=SUBSTITUTION_REASON,
            is_hard_denial=True,
        )

    if config.shell_globally_disabled:
        return CommandPermissions(
            all_allowed=False,
            disallowed_commands=[command],
            block_reason=GLOBALLY_DISABLED_REASON,
            is_hard_denial=True,
        )

    blocked_commands = _extract_commands(config.exclude_tools)
    allowed_commands = _extract_commands(config.core_tools or [])
    session_commands = [_normalize(entry) for entry in session_allowlist or ()]

    disallowed: list[str] = []
    for segment in map(_normalize, split_commands(command)):
        if _matches_any(segment, blocked_commands):
            return CommandPermissions(
                all_allowed=False,
                disallowed_commands=[segment],
                block_reason=f"Command '{segment}' is blocked by configuration",
                is_hard_denial=True,
            )

        if session_allowlist is not None:
            admitted = (
                config.wildcard_allowed
                or _matches_any(segment, allowed_commands)
                or _matches_any(segment, session_commands)
            )
        else:
            admitted = not config.strict_allowlist or _matches_any(segment, allowed_commands)

        if not admitted:
            disallowed.append(segment)

    if disallowed:
        reason = (
            NOT_IN_SESSION_ALLOWLIST_REASON
            if session_allowlist is not None
            else NOT_IN_ALLOWLIST_REASON
        )
        return CommandPermissions(
            all_allowed=False,
            disallowed_commands=disallowed,
            block_reason=reason,
            is_hard_denial=False,
        )

    return CommandPermissions(all_allowed=True)
