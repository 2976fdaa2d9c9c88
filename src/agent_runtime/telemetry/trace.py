"""Trace context for turn and tool-call correlation.

One trace covers one turn. Every tool call resolved within the turn gets its
own span, which carries the model-supplied call id so log lines from the
scheduler, the tool and the turn can be joined on either key.
"""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TraceContext:
    """Immutable correlation ids for log records.

    Attributes:
        trace_id: Identifier of the turn (UUID string).
        span_id: Identifier of one tool call within the turn, or None for the
            turn itself. 16 hex characters, the size of an OpenTelemetry
            span id.
        call_id: Call id of the tool call this span belongs to.
    """

    trace_id: str
    span_id: str | None = None
    call_id: str | None = None

    @classmethod
    def new_trace(cls) -> "TraceContext":
        """Start a new trace with no span."""
        return cls(trace_id=str(uuid.uuid4()))

    def for_call(self, call_id: str) -> "TraceContext":
        """Open a span for one tool call within this trace.

        Args:
            call_id: Call id of the tool call.

        Returns:
            A context sharing ``trace_id`` with a fresh ``span_id``.
        """
        return TraceContext(trace_id=self.trace_id, span_id=uuid.uuid4().hex[:16], call_id=call_id)

    def log_fields(self) -> dict[str, str]:
        """Fields to bind on log records; unset ids are left out."""
        fields = {"trace_id": self.trace_id}
        if self.span_id is not None:
            fields["span_id"] = self.span_id
        if self.call_id is not None:
            fields["call_id"] = self.call_id
        return fields
