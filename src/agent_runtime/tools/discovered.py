"""Tools discovered by running a project-provided discovery command.

The discovery command prints a JSON array of function declarations. Each
declaration becomes a ``SubprocessDiscoveredTool`` that, when called, runs
``<call command> <tool name>`` with the JSON arguments on stdin.
"""

import asyncio
import json
import shlex
import signal
import subprocess
from typing import Any, Literal

from agent_runtime.telemetry import (
    SUBPROCESS_DISCOVERY_BLOCKING,
    SUBPROCESS_DISCOVERY_FAILED,
    get_logger,
)
from agent_runtime.tools.types import (
    CancellationToken,
    DiscoveryError,
    ToolCallConfirmationDetails,
    ToolError,
    ToolResult,
)

log = get_logger(__name__)

_DESCRIPTION_SUFFIX = """

This tool was discovered from the project by executing the command `{discovery_cmd}` on project root.
When called, this tool will execute the command `{call_cmd} {name}` on project root.
Tool discovery and call commands can be configured in project or user settings.

When called, the tool call command is executed as a subprocess.
On success, tool output is returned as a json string.
Otherwise, the following information is returned:

Stdout: Output on stdout stream. Can be `(empty)` or partial.
Stderr: Output on stderr stream. Can be `(empty)` or partial.
Error: Error or `(none)` if no error was reported for the subprocess.
Exit Code: Exit code or `(none)` if terminated by signal.
Signal: Signal number or `(none)` if no signal was received.
"""


class SubprocessDiscoveredTool:
    """A tool backed by an external call command.

    Never raises from ``execute``: spawn failures, non-zero exits, signals and
    stderr output are all reported as a result with ``error`` set.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameter_schema: dict[str, Any] | None,
        *,
        discovery_command: str,
        call_command: str,
    ) -> None:
        self._name = name
        self.call_command = call_command
        self.parameter_schema = parameter_schema or {"type": "object", "properties": {}}
        self._description = (description or "") + _DESCRIPTION_SUFFIX.format(
            discovery_cmd=discovery_command, call_cmd=call_command, name=name
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def schema(self) -> dict[str, Any]:
        return {
            "name": self._name,
            "description": self._description,
            "parameters": self.parameter_schema,
        }

    async def should_confirm_execute(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolCallConfirmationDetails | Literal[False]:
        return False

    async def execute(self, args: dict[str, Any], token: CancellationToken) -> ToolResult:
        try:
            call_argv = shlex.split(self.call_command)
        except ValueError:
            call_argv = []
        if not call_argv:
            message = f"No usable tool call command configured: {self.call_command!r}"
            return ToolResult(
                llm_content=f"Error: {message}",
                return_display=f"Error: {message}",
                error=ToolError(message=message, type="subprocess_failed"),
            )
        argv = [*call_argv, self._name]
        payload = json.dumps(args).encode("utf-8")

        stdout = stderr = ""
        error: Exception | None = None
        exit_code: int | None = None
        exit_signal: str | None = None

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            error = e
            process = None

        if process is not None:
            communicate = asyncio.ensure_future(process.communicate(payload))
            cancel_wait = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait({communicate, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
                if not communicate.done() and process.returncode is None:
                    process.kill()
                out_bytes, err_bytes = await communicate
            finally:
                cancel_wait.cancel()
            stdout = out_bytes.decode("utf-8", errors="replace")
            stderr = err_bytes.decode("utf-8", errors="replace")
            if process.returncode is not None and process.returncode < 0:
                exit_signal = signal.Signals(-process.returncode).name
            else:
                exit_code = process.returncode

        if error is not None or exit_code != 0 or exit_signal or stderr:
            llm_content = "\n".join(
                [
                    f"Stdout: {stdout or '(empty)'}",
                    f"Stderr: {stderr or '(empty)'}",
                    f"Error: {error if error is not None else '(none)'}",
                    f"Exit Code: {exit_code if exit_code is not None else '(none)'}",
                    f"Signal: {exit_signal or '(none)'}",
                ]
            )
            log.warning(
                "subprocess_tool_failed",
                tool_name=self._name,
                exit_code=exit_code,
                signal=exit_signal,
                error=str(error) if error is not None else None,
            )
            message = str(error) if error is not None else (
                stderr.strip() or f"Tool call command failed (exit code {exit_code}, signal {exit_signal})"
            )
            return ToolResult(
                llm_content=llm_content,
                return_display=llm_content,
                error=ToolError(message=message, type="subprocess_failed"),
            )

        return ToolResult(llm_content=stdout, return_display=stdout)

    def __repr__(self) -> str:
        return f"SubprocessDiscoveredTool(name={self._name!r})"


def parse_function_declarations(raw: Any) -> list[dict[str, Any]]:
    """Flatten discovery output into a list of function declarations.

    Entries may wrap declarations in ``function_declarations`` or
    ``functionDeclarations`` arrays, or be a bare declaration with ``name``.
    Anything else is ignored.

    Raises:
        DiscoveryError: If the output is not a JSON array.
    """
    if not isinstance(raw, list):
        raise DiscoveryError("Tool discovery output must be a JSON array")

    functions: list[dict[str, Any]] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        if entry.get("function_declarations"):
            functions.extend(entry["function_declarations"])
        elif entry.get("functionDeclarations"):
            functions.extend(entry["functionDeclarations"])
        elif entry.get("name"):
            functions.append(entry)
    return [func for func in functions if isinstance(func, dict) and func.get("name")]


def discover_subprocess_tools(
    discovery_command: str, call_command: str
) -> list[SubprocessDiscoveredTool]:
    """Run the discovery command and build a tool per declaration.

    This blocks the calling thread until the command exits.

    Args:
        discovery_command: Shell command printing the declarations.
        call_command: Command invoked as ``<call_command> <name>`` per call.

    Returns:
        Discovered tools in declaration order.

    Raises:
        DiscoveryError: If no call command is given, or the command fails or
            prints invalid JSON.
    """
    if not call_command.strip():
        raise DiscoveryError("Tool discovery requires a tool call command")

    log.info(SUBPROCESS_DISCOVERY_BLOCKING, command=discovery_command)
    try:
        completed = subprocess.run(
            discovery_command, shell=True, capture_output=True, text=True, check=True
        )
        raw = json.loads(completed.stdout.strip())
    except subprocess.CalledProcessError as e:
        log.error(
            SUBPROCESS_DISCOVERY_FAILED,
            command=discovery_command,
            exit_code=e.returncode,
            stderr=e.stderr,
        )
        raise DiscoveryError(f"Tool discovery command failed with exit code {e.returncode}") from e
    except json.JSONDecodeError as e:
        log.error(SUBPROCESS_DISCOVERY_FAILED, command=discovery_command, error=str(e))
        raise DiscoveryError(f"Tool discovery command printed invalid JSON: {e}") from e

    return [
        SubprocessDiscoveredTool(
            func["name"],
            func.get("description", ""),
            func.get("parameters"),
            discovery_command=discovery_command,
            call_command=call_command,
        )
        for func in parse_function_declarations(raw)
    ]
