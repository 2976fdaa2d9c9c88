"""Type definitions for the tool layer.

This module defines the core types shared by tools, the registry and the
scheduler:
- ToolParameter / ToolDefinition: declarations exposed to the model
- ToolResult / ToolError: what a tool hands back after running
- Confirmation details: what a tool asks a human before running
- ToolCallRequest / ToolExecutionOutcome: one call and its resolution
- Tool: the capability protocol every tool variant satisfies
- CancellationToken: cooperative cancellation shared across a turn
- Error classes: hierarchy of tool errors
"""

import asyncio
import secrets
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

UNDEFINED_TOOL_NAME = "undefined_tool_name"


class ToolParameter(BaseModel):
    """Parameter definition for a tool."""

    name: str = Field(..., description="Parameter name")
    type: Literal["string", "number", "integer", "boolean", "object", "array"] = Field(
        ..., description="Parameter type"
    )
    description: str = Field(..., description="Parameter description for LLM")
    required: bool = Field(True, description="Whether parameter is required")
    default: Any | None = Field(None, description="Default value if not required")
    # Full JSON Schema for complex types (array items, object properties, etc.)
    json_schema: dict[str, Any] | None = Field(
        None, description="Full JSON Schema for complex nested types"
    )


class ToolDefinition(BaseModel):
    """Function declaration for a built-in tool.

    Each tool is declared with its name, description and parameters; the
    registry turns these into the ``{name, description, parameters}``
    declarations sent to the model.
    """

    name: str = Field(..., description="Tool name (e.g., 'read_file', 'run_shell_command')")
    display_name: str | None = Field(None, description="Human-readable name for the UI")
    description: str = Field(..., description="Clear description for LLM")
    parameters: list[ToolParameter] = Field(default_factory=list, description="Tool parameters")

    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema object describing the parameters."""
        properties: dict[str, Any] = {}
        for param in self.parameters:
            if param.json_schema:
                # Complex types keep their nested items/properties
                properties[param.name] = param.json_schema
            else:
                properties[param.name] = {
                    "type": param.type,
                    "description": param.description,
                }
        return {
            "type": "object",
            "properties": properties,
            "required": [param.name for param in self.parameters if param.required],
        }

    def to_function_declaration(self) -> dict[str, Any]:
        """Declaration in the ``{name, description, parameters}`` shape."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters_schema(),
        }


class ToolError(BaseModel):
    """Domain failure reported by a tool that otherwise completed."""

    message: str = Field(..., description="What went wrong, shown to the user and the model")
    type: str | None = Field(None, description="Machine-readable error category")


class ToolResult(BaseModel):
    """Result from tool execution.

    ``llm_content`` is fed back to the model verbatim; ``return_display`` is
    what the user sees.
    """

    llm_content: Any = Field(..., description="Content returned to the model")
    return_display: str = Field("", description="User-facing rendering of the result")
    error: ToolError | None = Field(None, description="Domain failure, if any")


class ToolConfirmationOutcome(str, Enum):
    """Possible outcomes of a human confirmation for a tool call."""

    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS = "proceed_always"
    PROCEED_ALWAYS_SERVER = "proceed_always_server"
    PROCEED_ALWAYS_TOOL = "proceed_always_tool"
    CANCEL = "cancel"


ConfirmCallback = Callable[[ToolConfirmationOutcome], Awaitable[None]]


async def _no_op_confirm(outcome: ToolConfirmationOutcome) -> None:
    return None


class _ConfirmationDetailsBase(BaseModel):
    """Common fields of every confirmation request.

    ``on_confirm`` is the continuation the UI layer awaits once a human has
    decided; it records "always" decisions and is excluded from dumps.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str
    on_confirm: ConfirmCallback = Field(default=_no_op_confirm, exclude=True, repr=False)


class ToolEditConfirmationDetails(_ConfirmationDetailsBase):
    """Confirmation details for tools that modify a file."""

    type: Literal["edit"] = "edit"
    file_name: str
    file_diff: str


class ToolExecConfirmationDetails(_ConfirmationDetailsBase):
    """Confirmation details for tools that execute a command."""

    type: Literal["exec"] = "exec"
    command: str
    root_command: str


class ToolMcpConfirmationDetails(_ConfirmationDetailsBase):
    """Confirmation details for tools served by a remote tool server."""

    type: Literal["mcp"] = "mcp"
    server_name: str
    tool_name: str
    tool_display_name: str


class ToolInfoConfirmationDetails(_ConfirmationDetailsBase):
    """Confirmation details for displaying general information (e.g. URLs to fetch)."""

    type: Literal["info"] = "info"
    prompt: str
    urls: list[str] | None = None


ToolCallConfirmationDetails = Union[
    ToolEditConfirmationDetails,
    ToolExecConfirmationDetails,
    ToolMcpConfirmationDetails,
    ToolInfoConfirmationDetails,
]


class CancellationToken:
    """Cooperative cancellation signal shared by a turn and its tool calls.

    Nothing is interrupted forcibly: the turn checks the token between stream
    chunks, and long-running tools poll or await it during their own I/O.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


def new_call_id(name: str) -> str:
    """Synthesize a call id unique within a turn: ``<name>-<epoch ms>-<hex>``."""
    return f"{name}-{int(time.time() * 1000)}-{secrets.token_hex(6)}"


class ToolCallRequest(BaseModel):
    """One model-requested tool invocation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    call_id: str = Field(..., description="Model-supplied or synthesized call id")
    name: str = Field(..., description="Requested tool name")
    args: dict[str, Any] = Field(default_factory=dict, description="Call arguments")

    @classmethod
    def from_function_call(
        cls, name: str | None, args: dict[str, Any] | None, call_id: str | None = None
    ) -> "ToolCallRequest":
        """Build a request, filling in a missing name, args or id."""
        tool_name = name or UNDEFINED_TOOL_NAME
        return cls(
            call_id=call_id or new_call_id(tool_name),
            name=tool_name,
            args=dict(args or {}),
        )


class ToolExecutionOutcome(BaseModel):
    """The scheduler's resolution of one request.

    Exactly one of ``result``, ``error`` and ``confirmation_details`` is
    meaningfully set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    call_id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: ToolResult | None = None
    error: Exception | None = None
    confirmation_details: ToolCallConfirmationDetails | None = None


@runtime_checkable
class Tool(Protocol):
    """Capability every tool variant exposes.

    Built-in, subprocess-discovered and server-discovered tools are sibling
    classes that satisfy this protocol; there is no shared base class.
    """

    @property
    def name(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def schema(self) -> dict[str, Any]:
        """Function declaration ``{name, description, parameters}``."""
        ...

    async def should_confirm_execute(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolCallConfirmationDetails | Literal[False]:
        """Confirmation request, or False when the call is pre-approved."""
        ...

    async def execute(self, args: dict[str, Any], token: CancellationToken) -> ToolResult:
        """Run the tool. May raise; domain failures go in ``ToolResult.error``."""
        ...


# Error hierarchy


class ToolExecutionError(Exception):
    """Base exception for tool call failures."""

    pass


class ToolNotFoundError(ToolExecutionError):
    """Raised when a call names a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Tool "{name}" not found or is not registered.')
        self.tool_name = name


class ToolInvocationError(ToolExecutionError):
    """Raised when a tool raises while executing."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.tool_name = name
        self.__cause__ = cause


class DiscoveryError(ToolExecutionError):
    """Raised when one discovery source (subprocess or server) fails."""

    pass
