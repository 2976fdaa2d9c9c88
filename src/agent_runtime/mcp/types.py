"""Conversions between MCP server data and tool formats."""

import json
import re
from typing import Any

# Longest tool name the model API accepts.
MAX_TOOL_NAME_LENGTH = 63

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


def sanitize_tool_name(name: str) -> str:
    """Make a tool name acceptable to the model API.

    Invalid characters become underscores, and names longer than 63 characters
    keep their first 28 and last 32 characters joined by ``___``.

    Args:
        name: Raw tool name (possibly ``server.tool``).

    Returns:
        Sanitised name.
    """
    sanitized = _INVALID_NAME_CHARS.sub("_", name)
    if len(sanitized) > MAX_TOOL_NAME_LENGTH:
        sanitized = sanitized[:28] + "___" + sanitized[-32:]
    return sanitized


def clean_input_schema(schema: Any) -> dict[str, Any]:
    """Strip JSON Schema keys the model API rejects.

    ``$schema`` and ``additionalProperties`` are removed at every nesting
    level. A missing or non-object schema becomes an empty object schema.

    Args:
        schema: ``inputSchema`` advertised by the server.

    Returns:
        Cleaned copy of the schema.
    """
    if not isinstance(schema, dict):
        return {"type": "object", "properties": {}}
    return _clean(schema)


def _clean(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: _clean(item)
            for key, item in value.items()
            if key not in ("$schema", "additionalProperties")
        }
    if isinstance(value, list):
        return [_clean(item) for item in value]
    return value


def format_result_for_display(parsed: Any) -> str:
    """Render a parsed tool-server result for the user.

    Plain text (or a list of plain text parts) is shown as-is; anything else
    is pretty-printed inside a JSON code block.

    Args:
        parsed: Result as returned by ``MCPClientWrapper.parse_result``.

    Returns:
        Display string.
    """
    if isinstance(parsed, str):
        return parsed
    if isinstance(parsed, list) and parsed and all(isinstance(item, str) for item in parsed):
        return "".join(parsed)
    if parsed is None or parsed == []:
        return "```json\n[]\n```"
    return "```json\n" + json.dumps(parsed, indent=2, default=str) + "\n```"
