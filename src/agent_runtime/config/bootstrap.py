"""Bootstrap configuration helpers (pre-settings).

These helpers exist for "chicken-and-egg" situations where we need a small amount
of configuration before the full Pydantic settings singleton can be imported.

Constraints:
- Keep this module dependency-light (no telemetry imports) to avoid circular imports.
- Prefer validating values using existing config validators.
"""

from __future__ import annotations

import os
from pathlib import Path

from agent_runtime.config.validators import validate_log_level


def get_bootstrap_log_level(default: str = "INFO") -> str:
    """Get logging level from environment without importing settings.

    Args:
        default: Default log level if not set or invalid.

    Returns:
        Uppercased, validated log level string.
    """
    value = os.getenv("APP_LOG_LEVEL", default)
    try:
        return validate_log_level(value)
    except ValueError:
        return validate_log_level(default)


def get_bootstrap_log_dir() -> Path | None:
    """Get the JSON log directory from environment without importing settings.

    File logging is opt-in: when ``AGENT_LOG_DIR`` is unset or empty, logs go
    to the console only.

    Returns:
        Log directory path, or None when file logging is disabled.
    """
    value = os.getenv("AGENT_LOG_DIR", "").strip()
    if not value:
        return None
    return Path(value).expanduser()
