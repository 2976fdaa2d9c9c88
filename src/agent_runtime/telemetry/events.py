"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Turn events
TURN_STARTED = "turn_started"
TURN_COMPLETED = "turn_completed"
TURN_CANCELLED = "turn_cancelled"
FUNCTION_CALL_RECEIVED = "function_call_received"

# Tool execution events
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_COMPLETED = "tool_call_completed"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_CALL_DOMAIN_ERROR = "tool_call_domain_error"
TOOL_NOT_FOUND = "tool_not_found"

# Registry events
TOOL_REGISTERED = "tool_registered"
TOOL_OVERWRITTEN = "tool_overwritten"
TOOLS_DISCOVERED = "tools_discovered"
SUBPROCESS_DISCOVERY_BLOCKING = "subprocess_discovery_blocking"
SUBPROCESS_DISCOVERY_FAILED = "subprocess_discovery_failed"

# Safety and governance events
POLICY_VIOLATION = "policy_violation"
APPROVAL_REQUIRED = "approval_required"
APPROVAL_GRANTED = "approval_granted"
APPROVAL_DENIED = "approval_denied"
ALLOWLIST_UPDATED = "allowlist_updated"

# MCP server events
MCP_SERVER_CONNECTING = "mcp_server_connecting"
MCP_SERVER_CONNECTED = "mcp_server_connected"
MCP_SERVER_DISCONNECTED = "mcp_server_disconnected"
MCP_SERVER_DISCOVERY_FAILED = "mcp_server_discovery_failed"
MCP_SERVER_NO_TOOLS = "mcp_server_no_tools"
MCP_TOOL_DISCOVERED = "mcp_tool_discovered"
