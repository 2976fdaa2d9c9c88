"""Tests for trace context."""

import dataclasses

import pytest

from agent_runtime.telemetry import TraceContext


def test_new_trace_is_unique() -> None:
    """Test each trace gets its own id and no span."""
    first = TraceContext.new_trace()
    second = TraceContext.new_trace()
    assert first.trace_id != second.trace_id
    assert first.span_id is None
    assert first.call_id is None


def test_for_call_opens_span() -> None:
    """Test call spans share the trace id and carry the call id."""
    trace = TraceContext.new_trace()
    span = trace.for_call("read_file-1")
    assert span.trace_id == trace.trace_id
    assert span.call_id == "read_file-1"
    assert len(span.span_id) == 16
    assert trace.for_call("read_file-1").span_id != span.span_id


def test_log_fields_skip_unset_ids() -> None:
    """Test only the ids that are set are bound to log records."""
    trace = TraceContext(trace_id="t")
    assert trace.log_fields() == {"trace_id": "t"}
    assert TraceContext("t", span_id="s", call_id="c").log_fields() == {
        "trace_id": "t",
        "span_id": "s",
        "call_id": "c",
    }


def test_trace_context_is_frozen() -> None:
    """Test trace contexts cannot be mutated."""
    trace = TraceContext.new_trace()
    with pytest.raises(dataclasses.FrozenInstanceError):
        trace.trace_id = "other"  # type: ignore[misc]
