"""Turn processor: one model exchange.

A turn sends a message, consumes the streamed response, surfaces text and
tool-call progress as events, resolves requested tool calls through the
scheduler, and buffers the function responses for the next request.
"""

from collections.abc import AsyncIterator
from typing import Any

from agent_runtime.orchestrator.scheduler import ToolCallScheduler
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
from agent_runtime.telemetry import (
    FUNCTION_CALL_RECEIVED,
    TURN_CANCELLED,
    TURN_COMPLETED,
    TURN_STARTED,
    TraceContext,
    get_logger,
)
from agent_runtime.tools.types import CancellationToken, ToolCallRequest, ToolExecutionOutcome

log = get_logger(__name__)


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


def build_function_responses(outcomes: list[ToolExecutionOutcome]) -> list[dict[str, Any]]:
    """Build the function-response parts sent back to the model.

    Every outcome produces exactly one response with the same id and name.
    Thrown errors become ``{"error": "Invocation failed: ..."}``; results,
    including those carrying a domain error, become ``{"output": ...}``.
    Calls awaiting confirmation have no output yet.

    Args:
        outcomes: Resolved tool calls, in request order.

    Returns:
        ``{"function_response": {"id", "name", "response"}}`` dicts.
    """
    responses: list[dict[str, Any]] = []
    for outcome in outcomes:
        if outcome.error is not None:
            response: dict[str, Any] = {
                "error": f"Invocation failed: {_error_message(outcome.error)}"
            }
            log.error(
                "tool_invocation_error_reported",
                tool_name=outcome.name,
                call_id=outcome.call_id,
                error=_error_message(outcome.error),
            )
        elif outcome.result is not None:
            response = {"output": outcome.result.llm_content}
            if outcome.result.error is not None:
                log.warning(
                    "tool_domain_error_reported",
                    tool_name=outcome.name,
                    call_id=outcome.call_id,
                    error=outcome.result.error.message,
                )
        else:
            response = {"output": None}

        responses.append(
            {
                "function_response": {
                    "id": outcome.call_id,
                    "name": outcome.name,
                    "response": response,
                }
            }
        )
    return responses


class Turn:
    """Manages one turn of the agentic loop.

    ``run`` yields events as immediate feedback to the user. Function
    responses accumulate in the turn and must be sent back by the caller.

    Usage:
        turn = Turn(client, ToolCallScheduler(registry))
        async for event in turn.run(message, token):
            ...
        next_message = turn.get_function_responses()
    """

    def __init__(self, client: ConversationClient, scheduler: ToolCallScheduler) -> None:
        """Initialize turn.

        Args:
            client: Streaming conversation handle.
            scheduler: Resolves requested tool calls.
        """
        self.client = client
        self.scheduler = scheduler
        self.trace_ctx = TraceContext.new_trace()
        self.pending_tool_calls: list[ToolCallRequest] = []
        self.fn_responses: list[dict[str, Any]] = []
        self.debug_responses: list[StreamChunk] = []

    async def run(self, message: Any, token: CancellationToken) -> AsyncIterator[ServerEvent]:
        """Send ``message`` and surface the streamed response as events.

        Args:
            message: Message (or function responses) to send.
            token: Cancellation token, checked once per received chunk.

        Yields:
            ContentEvent for text and inline tool errors, ToolCallInfoEvent
            for tool-call progress.

        Raises:
            TurnCancelledError: If cancellation is requested mid-stream.
        """
        log.info(TURN_STARTED, trace_id=self.trace_ctx.trace_id)

        async for chunk in self.client.send_message_stream(message):
            self.debug_responses.append(chunk)
            if token.is_cancelled:
                log.info(TURN_CANCELLED, trace_id=self.trace_ctx.trace_id)
                raise TurnCancelledError()

            if chunk.text:
                yield ContentEvent(text=chunk.text)
                continue

            if not chunk.function_calls:
                continue

            for fn_call in chunk.function_calls:
                yield self._register_pending(fn_call)

            outcomes = await self.scheduler.schedule(
                self.pending_tool_calls, token, trace_ctx=self.trace_ctx
            )
            for event in self._outcome_events(outcomes):
                yield event

            self.pending_tool_calls = []
            self.fn_responses.extend(build_function_responses(outcomes))

        log.info(
            TURN_COMPLETED,
            trace_id=self.trace_ctx.trace_id,
            function_responses=len(self.fn_responses),
        )

    def _register_pending(self, fn_call: FunctionCall) -> ToolCallInfoEvent:
        request = ToolCallRequest.from_function_call(fn_call.name, fn_call.args, fn_call.id)
        self.pending_tool_calls.append(request)
        log.debug(
            FUNCTION_CALL_RECEIVED,
            tool_name=request.name,
            call_id=request.call_id,
            trace_id=self.trace_ctx.trace_id,
        )
        return ToolCallInfoEvent(
            call_id=request.call_id,
            name=request.name,
            args=request.args,
            status=ToolCallStatus.PENDING,
        )

    @staticmethod
    def _outcome_events(outcomes: list[ToolExecutionOutcome]) -> list[ServerEvent]:
        events: list[ServerEvent] = []
        for outcome in outcomes:
            # The first error ends surfacing for the whole batch; the
            # remaining outcomes are still answered in the function responses.
            if outcome.error is not None:
                events.append(
                    ContentEvent(
                        text=f"[Error invoking tool {outcome.name}: {_error_message(outcome.error)}]"
                    )
                )
                break
            if outcome.result is not None and outcome.result.error is not None:
                events.append(
                    ContentEvent(
                        text=f"[Error executing tool {outcome.name}: {outcome.result.error.message}]"
                    )
                )
                break

            status = (
                ToolCallStatus.CONFIRMING
                if outcome.confirmation_details is not None
                else ToolCallStatus.INVOKED
            )
            events.append(
                ToolCallInfoEvent(
                    call_id=outcome.call_id,
                    name=outcome.name,
                    args=outcome.args,
                    status=status,
                    confirmation_details=outcome.confirmation_details,
                    result_display=outcome.result.return_display if outcome.result else None,
                )
            )
        return events

    def get_function_responses(self) -> list[dict[str, Any]]:
        """Function responses assembled so far, to send as the next message."""
        return self.fn_responses

    def get_debug_responses(self) -> list[StreamChunk]:
        """Every chunk received, in order."""
        return self.debug_responses
