"""Core types for the orchestrator.

This module defines the data structures used by the turn processor:
- FunctionCall / StreamChunk: what the model stream delivers
- ConversationClient: the streaming chat handle a turn drives
- ToolCallStatus: lifecycle of a surfaced tool call
- ContentEvent / ToolCallInfoEvent: events surfaced to the UI layer
- TurnCancelledError: raised when the user cancels mid-stream
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, Union

from agent_runtime.tools.types import ToolCallConfirmationDetails

CANCELLED_DURING_STREAM = "Request cancelled by user during stream."


@dataclass(frozen=True)
class FunctionCall:
    """A tool call requested by the model. Any field may be missing."""

    id: str | None = None
    name: str | None = None
    args: dict[str, Any] | None = None


@dataclass(frozen=True)
class StreamChunk:
    """One chunk of a streamed model response.

    Attributes:
        text: Text delta, if any.
        function_calls: Tool calls completed in this chunk.
        raw: Provider payload, kept for debugging.
    """

    text: str | None = None
    function_calls: list[FunctionCall] = field(default_factory=list)
    raw: Any = None


class ConversationClient(Protocol):
    """Streaming chat handle. Owns history and the provider connection."""

    def send_message_stream(self, message: Any) -> AsyncIterator[StreamChunk]:
        """Send a message and stream the model's response."""
        ...


class ToolCallStatus(str, Enum):
    """Status of a tool call as surfaced to the UI."""

    PENDING = "pending"
    CONFIRMING = "confirming"
    INVOKED = "invoked"


@dataclass
class ContentEvent:
    """Text for the UI, either model output or an inline tool error."""

    text: str


@dataclass
class ToolCallInfoEvent:
    """Progress of one tool call.

    Attributes:
        call_id: Call id shared with the function response.
        name: Tool name requested by the model.
        args: Call arguments.
        status: Where the call is in its lifecycle.
        confirmation_details: Set when status is CONFIRMING.
        result_display: Set when status is INVOKED.
    """

    call_id: str
    name: str
    args: dict[str, Any]
    status: ToolCallStatus
    confirmation_details: ToolCallConfirmationDetails | None = None
    result_display: str | None = None


ServerEvent = Union[ContentEvent, ToolCallInfoEvent]


class TurnCancelledError(Exception):
    """Raised when cancellation is requested while a response is streaming."""

    def __init__(self, message: str = CANCELLED_DURING_STREAM) -> None:
        super().__init__(message)
