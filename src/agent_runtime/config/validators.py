"""Custom Pydantic validators for configuration.

This module provides validators for cross-field validation and
custom type conversions.
"""

import json
import shlex
from pathlib import Path
from typing import Any


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Validated log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return value.upper()


def resolve_path(value: Path | str) -> Path:
    """Resolve relative paths to absolute paths.

    Relative paths are resolved against the current working directory, which
    is the directory the runtime operates on.

    Args:
        value: Path value (can be string or Path).

    Returns:
        Resolved Path object.
    """
    path = Path(value) if isinstance(value, str) else value
    return path.expanduser().resolve()


def parse_name_list(value: Any) -> Any:
    """Parse a tool-name list from an environment string.

    Handles:
    - JSON array: '["read_file", "ShellTool(git status)"]'
    - Comma-separated: "read_file, ShellTool(git status)"
    - Already a list (or None): returned unchanged

    Args:
        value: Raw field value.

    Returns:
        List of names, or the value unchanged when it is not a string.
    """
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not text:
        return []
    if text.startswith("["):
        parsed = json.loads(text)
        if not isinstance(parsed, list):
            raise ValueError(f"Expected a JSON array, got {type(parsed).__name__}")
        return [str(item) for item in parsed]
    return [part.strip() for part in text.split(",") if part.strip()]


def split_command_line(command: str) -> list[str]:
    """Split a server command string into argv using POSIX shell rules.

    Args:
        command: Command line, e.g. ``"npx -y @scope/server --flag 'a b'"``.

    Returns:
        Argument vector.

    Raises:
        ValueError: If the command is empty or has unbalanced quotes.
    """
    argv = shlex.split(command)
    if not argv:
        raise ValueError("Command string is empty")
    return argv
