"""Telemetry module for structured logging and trace correlation.

This module provides:
- TraceContext for turn and tool-call correlation
- Structured logging via structlog
- Semantic event constants
"""

from agent_runtime.telemetry.events import (
    ALLOWLIST_UPDATED,
    APPROVAL_DENIED,
    APPROVAL_GRANTED,
    APPROVAL_REQUIRED,
    FUNCTION_CALL_RECEIVED,
    MCP_SERVER_CONNECTED,
    MCP_SERVER_CONNECTING,
    MCP_SERVER_DISCONNECTED,
    MCP_SERVER_DISCOVERY_FAILED,
    MCP_SERVER_NO_TOOLS,
    MCP_TOOL_DISCOVERED,
    POLICY_VIOLATION,
    SUBPROCESS_DISCOVERY_BLOCKING,
    SUBPROCESS_DISCOVERY_FAILED,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_DOMAIN_ERROR,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_NOT_FOUND,
    TOOL_OVERWRITTEN,
    TOOL_REGISTERED,
    TOOLS_DISCOVERED,
    TURN_CANCELLED,
    TURN_COMPLETED,
    TURN_STARTED,
)
from agent_runtime.telemetry.logger import configure_logging, get_logger
from agent_runtime.telemetry.trace import TraceContext

__all__ = [
    # Core exports
    "TraceContext",
    "get_logger",
    "configure_logging",
    # Event constants
    "TURN_STARTED",
    "TURN_COMPLETED",
    "TURN_CANCELLED",
    "FUNCTION_CALL_RECEIVED",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_COMPLETED",
    "TOOL_CALL_FAILED",
    "TOOL_CALL_DOMAIN_ERROR",
    "TOOL_NOT_FOUND",
    "TOOL_REGISTERED",
    "TOOL_OVERWRITTEN",
    "TOOLS_DISCOVERED",
    "SUBPROCESS_DISCOVERY_BLOCKING",
    "SUBPROCESS_DISCOVERY_FAILED",
    "POLICY_VIOLATION",
    "APPROVAL_REQUIRED",
    "APPROVAL_GRANTED",
    "APPROVAL_DENIED",
    "ALLOWLIST_UPDATED",
    "MCP_SERVER_CONNECTING",
    "MCP_SERVER_CONNECTED",
    "MCP_SERVER_DISCONNECTED",
    "MCP_SERVER_DISCOVERY_FAILED",
    "MCP_SERVER_NO_TOOLS",
    "MCP_TOOL_DISCOVERED",
]
