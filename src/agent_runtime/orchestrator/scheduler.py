"""Tool call scheduler.

Resolves a batch of tool call requests concurrently. Each request ends in
exactly one of three states: an execution result, a captured error, or a
confirmation request awaiting a human decision.
"""

import asyncio
import time

from agent_runtime.telemetry import (
    APPROVAL_DENIED,
    APPROVAL_GRANTED,
    APPROVAL_REQUIRED,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_DOMAIN_ERROR,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_NOT_FOUND,
    TraceContext,
    get_logger,
)
from agent_runtime.tools.registry import ToolRegistry
from agent_runtime.tools.types import (
    CancellationToken,
    Tool,
    ToolCallRequest,
    ToolConfirmationOutcome,
    ToolError,
    ToolExecutionOutcome,
    ToolInvocationError,
    ToolNotFoundError,
    ToolResult,
)

log = get_logger(__name__)

CANCELLED_BY_USER = "Tool call cancelled by user."


class ToolCallScheduler:
    """Resolves tool call requests against a registry.

    Usage:
        scheduler = ToolCallScheduler(registry)
        outcomes = await scheduler.schedule(requests, token)
    """

    def __init__(self, registry: ToolRegistry) -> None:
        """Initialize scheduler.

        Args:
            registry: Registry used to look up requested tools.
        """
        self.registry = registry

    async def schedule(
        self,
        requests: list[ToolCallRequest],
        token: CancellationToken,
        trace_ctx: TraceContext | None = None,
    ) -> list[ToolExecutionOutcome]:
        """Resolve every request concurrently.

        Args:
            requests: Calls to resolve.
            token: Cancellation token for the current turn.
            trace_ctx: Trace of the current turn; a new one is started if None.

        Returns:
            One outcome per request, in input order.
        """
        trace_ctx = trace_ctx or TraceContext.new_trace()
        return list(
            await asyncio.gather(
                *(
                    self._resolve(request, token, trace_ctx.for_call(request.call_id))
                    for request in requests
                )
            )
        )

    async def _resolve(
        self, request: ToolCallRequest, token: CancellationToken, span: TraceContext
    ) -> ToolExecutionOutcome:
        tool = self.registry.get_tool(request.name)
        if tool is None:
            log.warning(TOOL_NOT_FOUND, tool_name=request.name, **span.log_fields())
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                error=ToolNotFoundError(request.name),
            )

        try:
            details = await tool.should_confirm_execute(request.args, token)
        except Exception as e:
            log.error(
                TOOL_CALL_FAILED,
                tool_name=request.name,
                stage="confirmation",
                error=str(e),
                exc_info=True,
                **span.log_fields(),
            )
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                error=ToolInvocationError(request.name, e),
            )

        if details:
            log.info(
                APPROVAL_REQUIRED,
                tool_name=request.name,
                confirmation_type=details.type,
                **span.log_fields(),
            )
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                confirmation_details=details,
            )

        return await self._execute(tool, request, token, span)

    async def _execute(
        self,
        tool: Tool,
        request: ToolCallRequest,
        token: CancellationToken,
        span: TraceContext,
    ) -> ToolExecutionOutcome:
        log.info(
            TOOL_CALL_STARTED, tool_name=request.name, arguments=request.args, **span.log_fields()
        )
        start_time = time.time()

        try:
            result = await tool.execute(request.args, token)
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            log.error(
                TOOL_CALL_FAILED,
                tool_name=request.name,
                error=str(e),
                latency_ms=latency_ms,
                exc_info=True,
                **span.log_fields(),
            )
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                error=ToolInvocationError(request.name, e),
            )

        latency_ms = (time.time() - start_time) * 1000
        if result.error is not None:
            log.warning(
                TOOL_CALL_DOMAIN_ERROR,
                tool_name=request.name,
                error=result.error.message,
                error_type=result.error.type,
                latency_ms=latency_ms,
                **span.log_fields(),
            )
        else:
            log.info(
                TOOL_CALL_COMPLETED,
                tool_name=request.name,
                latency_ms=latency_ms,
                **span.log_fields(),
            )
        return ToolExecutionOutcome(
            call_id=request.call_id, name=request.name, args=request.args, result=result
        )

    async def execute_confirmed(
        self,
        pending: ToolExecutionOutcome,
        outcome: ToolConfirmationOutcome,
        token: CancellationToken,
        trace_ctx: TraceContext | None = None,
    ) -> ToolExecutionOutcome:
        """Finish a call that was waiting for confirmation.

        Runs the confirmation continuation (which records "always" decisions),
        then executes the tool unless the human cancelled.

        Args:
            pending: Outcome returned by ``schedule`` with confirmation details.
            outcome: The human's decision.
            token: Cancellation token for the current turn.
            trace_ctx: Trace to log under; a new one is started if None.

        Returns:
            Outcome carrying the execution result (or cancellation result).

        Raises:
            ValueError: If ``pending`` is not awaiting confirmation.
        """
        if pending.confirmation_details is None:
            raise ValueError(f"Tool call {pending.call_id} is not awaiting confirmation")

        span = (trace_ctx or TraceContext.new_trace()).for_call(pending.call_id)
        request = ToolCallRequest(call_id=pending.call_id, name=pending.name, args=pending.args)
        await pending.confirmation_details.on_confirm(outcome)

        if outcome == ToolConfirmationOutcome.CANCEL:
            log.info(APPROVAL_DENIED, tool_name=request.name, **span.log_fields())
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                result=ToolResult(
                    llm_content=CANCELLED_BY_USER,
                    return_display=CANCELLED_BY_USER,
                    error=ToolError(message=CANCELLED_BY_USER, type="cancelled"),
                ),
            )

        log.info(
            APPROVAL_GRANTED, tool_name=request.name, outcome=outcome.value, **span.log_fields()
        )
        tool = self.registry.get_tool(request.name)
        if tool is None:
            log.warning(TOOL_NOT_FOUND, tool_name=request.name, **span.log_fields())
            return ToolExecutionOutcome(
                call_id=request.call_id,
                name=request.name,
                args=request.args,
                error=ToolNotFoundError(request.name),
            )
        return await self._execute(tool, request, token, span)
