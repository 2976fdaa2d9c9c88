"""Built-in tools composed from a definition and an executor function.

Executors follow the plain-function style: they accept the tool parameters
as keyword arguments and return either a ``ToolResult`` or a dict/str that
is wrapped into one. Sync executors run in the default thread pool so they
never block the event loop.
"""

import asyncio
import inspect
import json
from collections.abc import Callable
from typing import Any, Literal

from agent_runtime.telemetry import get_logger
from agent_runtime.tools.types import (
    CancellationToken,
    ToolCallConfirmationDetails,
    ToolDefinition,
    ToolError,
    ToolResult,
)

log = get_logger(__name__)

ConfirmFunction = Callable[..., Any]


def _accepts_token(func: Callable[..., Any]) -> bool:
    try:
        return "token" in inspect.signature(func).parameters
    except (TypeError, ValueError):
        return False


def _coerce_result(output: Any) -> ToolResult:
    """Wrap a plain executor return value into a ToolResult.

    Dicts carrying ``success: False`` and an ``error`` message become domain
    errors; everything else is passed to the model unchanged.
    """
    if isinstance(output, ToolResult):
        return output

    if isinstance(output, str):
        return ToolResult(llm_content=output, return_display=output)

    if isinstance(output, dict) and output.get("success") is False and output.get("error"):
        message = str(output["error"])
        return ToolResult(
            llm_content=output,
            return_display=f"Error: {message}",
            error=ToolError(message=message, type=output.get("error_type")),
        )

    display = json.dumps(output, indent=2, default=str)
    return ToolResult(llm_content=output, return_display=display)


class BuiltinTool:
    """A tool implemented in-process.

    Usage:
        tool = BuiltinTool(read_file_tool, read_file_executor)
        registry.register_tool(tool)
    """

    def __init__(
        self,
        definition: ToolDefinition,
        executor: Callable[..., Any],
        *,
        confirm: ConfirmFunction | None = None,
    ) -> None:
        """Initialize built-in tool.

        Args:
            definition: Declaration exposed to the model.
            executor: Callable accepting the tool parameters as keyword
                arguments (plus ``token`` if it declares one).
            confirm: Optional callable ``(args, token)`` returning
                confirmation details or False. Tools without one never ask.
        """
        self.definition = definition
        self.executor = executor
        self.confirm = confirm
        self._executor_takes_token = _accepts_token(executor)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def display_name(self) -> str:
        return self.definition.display_name or self.definition.name

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def schema(self) -> dict[str, Any]:
        return self.definition.to_function_declaration()

    async def should_confirm_execute(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolCallConfirmationDetails | Literal[False]:
        if self.confirm is None:
            return False
        details = self.confirm(args, token)
        if inspect.isawaitable(details):
            details = await details
        return details or False

    def _filter_arguments(self, args: dict[str, Any]) -> dict[str, Any]:
        """Drop arguments the definition does not declare."""
        valid_param_names = {param.name for param in self.definition.parameters}
        invalid_params = set(args) - valid_param_names
        if invalid_params:
            log.warning(
                "tool_call_invalid_parameters_filtered",
                tool_name=self.name,
                invalid_parameters=sorted(invalid_params),
                valid_parameters=sorted(valid_param_names),
            )
        return {k: v for k, v in args.items() if k in valid_param_names}

    async def execute(self, args: dict[str, Any], token: CancellationToken) -> ToolResult:
        kwargs = self._filter_arguments(args)
        if self._executor_takes_token:
            kwargs["token"] = token

        if inspect.iscoroutinefunction(self.executor):
            output = await self.executor(**kwargs)
        else:
            # Sync executor - run in thread pool to avoid blocking
            loop = asyncio.get_running_loop()
            output = await loop.run_in_executor(None, lambda: self.executor(**kwargs))

        return _coerce_result(output)

    def __repr__(self) -> str:
        return f"BuiltinTool(name={self.name!r})"
