"""Orchestrator module for turn processing and tool call scheduling.

This module provides the turn processor that consumes streamed model
responses and the scheduler that resolves the tool calls they request.
"""

from agent_runtime.orchestrator.scheduler import ToolCallScheduler
from agent_runtime.orchestrator.turn import Turn, build_function_responses
from agent_runtime.orchestrator.types import (
    ContentEvent,
    ConversationClient,
    FunctionCall,
    ServerEvent,
    StreamChunk,
    ToolCallInfoEvent,
    ToolCallStatus,
    TurnCancelledError,
)

__all__ = [
    # Public API
    "Turn",
    "ToolCallScheduler",
    "build_function_responses",
    # Types
    "ConversationClient",
    "StreamChunk",
    "FunctionCall",
    "ContentEvent",
    "ToolCallInfoEvent",
    "ToolCallStatus",
    "ServerEvent",
    "TurnCancelledError",
]
