"""Shell command tool (``run_shell_command``).

Commands are checked by the shell safety policy before anything is spawned,
then run as ``bash -c`` in their own process group so that cancellation can
terminate the whole group, including background children.
"""

import asyncio
import os
import re
import secrets
import signal
import sys
import tempfile
from pathlib import Path
from typing import Any, Literal

from agent_runtime.governance import (
    ShellPolicyConfig,
    get_command_roots,
    is_command_allowed,
    strip_shell_wrapper,
)
from agent_runtime.telemetry import POLICY_VIOLATION, get_logger
from agent_runtime.tools.types import (
    CancellationToken,
    ToolCallConfirmationDetails,
    ToolConfirmationOutcome,
    ToolDefinition,
    ToolError,
    ToolExecConfirmationDetails,
    ToolParameter,
    ToolResult,
)

log = get_logger(__name__)

SHELL_TOOL_NAME = "run_shell_command"

# Grace period between SIGTERM and SIGKILL when cancelling.
_KILL_GRACE_SECONDS = 0.2

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

shell_tool_definition = ToolDefinition(
    name=SHELL_TOOL_NAME,
    display_name="Shell",
    description=(
        "Executes a shell command as `bash -c <command>`. Command can start background "
        "processes using `&`. Returns Command, Directory, Stdout, Stderr, Error, Exit Code, "
        "Signal, Background PIDs and Process Group PGID."
    ),
    parameters=[
        ToolParameter(
            name="command",
            type="string",
            description="Exact bash command to execute as `bash -c <command>`",
            required=True,
        ),
        ToolParameter(
            name="description",
            type="string",
            description="Brief description of the command for the user",
            required=False,
        ),
        ToolParameter(
            name="directory",
            type="string",
            description="Directory to run the command in, relative to the project root",
            required=False,
        ),
    ],
)


def _strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


class ShellTool:
    """Runs shell commands under the shell safety policy.

    Confirmation is keyed by command root: once a human chooses "proceed
    always", later commands whose roots were all approved run without asking.
    """

    def __init__(
        self, policy: ShellPolicyConfig, target_dir: Path, *, debug: bool = False
    ) -> None:
        """Initialize shell tool.

        Args:
            policy: Allow and block lists for commands.
            target_dir: Project root; commands run here unless a relative
                ``directory`` is given.
            debug: Show the full result block to the user instead of the
                raw output.
        """
        self.policy = policy
        self.target_dir = target_dir
        self.debug = debug
        self.whitelist: set[str] = set()

    @property
    def name(self) -> str:
        return SHELL_TOOL_NAME

    @property
    def display_name(self) -> str:
        return shell_tool_definition.display_name or SHELL_TOOL_NAME

    @property
    def description(self) -> str:
        return shell_tool_definition.description

    @property
    def schema(self) -> dict[str, Any]:
        return shell_tool_definition.to_function_declaration()

    def validate_params(self, args: dict[str, Any]) -> str | None:
        """Return a rejection reason, or None when the call may proceed."""
        command = args.get("command")
        if not isinstance(command, str) or not command.strip():
            return "Command cannot be empty."

        permission = is_command_allowed(command, self.policy)
        if not permission.allowed:
            return permission.reason or f"Command is not allowed: {command}"

        if not get_command_roots(strip_shell_wrapper(command)):
            return "Could not identify command root to obtain permission from user."

        directory = args.get("directory")
        if directory:
            if not isinstance(directory, str):
                return "Directory must be a string."
            if os.path.isabs(directory):
                return "Directory cannot be absolute. Must be relative to the project root directory."
            resolved = (self.target_dir / directory).resolve()
            if not resolved.is_relative_to(self.target_dir.resolve()):
                return "Directory must be inside the project root directory."
            if not resolved.is_dir():
                return "Directory must exist."
        return None

    async def should_confirm_execute(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolCallConfirmationDetails | Literal[False]:
        if self.validate_params(args):
            # Skip confirmation; execute will reject immediately.
            return False

        command: str = args["command"]
        roots = get_command_roots(strip_shell_wrapper(command))
        if all(root in self.whitelist for root in roots):
            return False

        async def on_confirm(outcome: ToolConfirmationOutcome) -> None:
            if outcome == ToolConfirmationOutcome.PROCEED_ALWAYS:
                self.whitelist.update(roots)
                log.info("shell_roots_whitelisted", roots=roots)

        return ToolExecConfirmationDetails(
            title="Confirm Shell Command",
            command=command,
            root_command=", ".join(roots),
            on_confirm=on_confirm,
        )

    async def execute(self, args: dict[str, Any], token: CancellationToken) -> ToolResult:
        command = args.get("command", "")
        reason = self.validate_params(args)
        if reason:
            log.warning(POLICY_VIOLATION, tool_name=SHELL_TOOL_NAME, command=command, reason=reason)
            return ToolResult(
                llm_content=f"Command rejected: {command}\nReason: {reason}",
                return_display=f"Error: {reason}",
                error=ToolError(message=reason, type="policy_rejected"),
            )

        if token.is_cancelled:
            return ToolResult(
                llm_content="Command was cancelled by user before it could start.",
                return_display="Command cancelled by user.",
            )

        directory = args.get("directory") or ""
        cwd = (self.target_dir / directory).resolve()
        return await self._run(command, directory, cwd, token)

    async def _run(
        self, command: str, directory: str, cwd: Path, token: CancellationToken
    ) -> ToolResult:
        is_windows = sys.platform == "win32"
        pgrep_file = Path(tempfile.gettempdir()) / f"shell_pgrep_{secrets.token_hex(6)}.tmp"

        if is_windows:
            argv = ["cmd.exe", "/c", command]
        else:
            # Record background children of the process group before exiting.
            wrapped = command.strip()
            if not wrapped.endswith("&"):
                wrapped += ";"
            wrapped = f"{{ {wrapped} }}; __code=$?; pgrep -g 0 >{pgrep_file} 2>&1; exit $__code;"
            argv = ["bash", "-c", wrapped]

        log.debug("shell_command_spawning", command=command, cwd=str(cwd))
        error: OSError | None = None
        stdout = stderr = ""
        cancelled = False
        process: asyncio.subprocess.Process | None = None

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                start_new_session=not is_windows,
            )
        except OSError as e:
            error = e

        if process is not None:
            communicate = asyncio.ensure_future(process.communicate())
            cancel_wait = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait({communicate, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
                if not communicate.done():
                    cancelled = True
                    await self._terminate(process)
                out_bytes, err_bytes = await communicate
                stdout = _strip_ansi(out_bytes.decode("utf-8", errors="replace"))
                stderr = _strip_ansi(err_bytes.decode("utf-8", errors="replace"))
            finally:
                cancel_wait.cancel()

        background_pids = self._read_background_pids(pgrep_file, process)

        exit_code: int | None = None
        exit_signal: str | None = None
        if process is not None and process.returncode is not None:
            if process.returncode < 0:
                exit_signal = signal.Signals(-process.returncode).name
            else:
                exit_code = process.returncode

        output = stdout + stderr
        if cancelled:
            llm_content = "Command was cancelled by user before it could complete."
            if output.strip():
                llm_content += (
                    " Below is the output (on stdout and stderr) before it was cancelled:\n"
                    + output
                )
            else:
                llm_content += " There was no output before it was cancelled."
        else:
            llm_content = "\n".join(
                [
                    f"Command: {command}",
                    f"Directory: {directory or '(root)'}",
                    f"Stdout: {stdout or '(empty)'}",
                    f"Stderr: {stderr or '(empty)'}",
                    f"Error: {error if error is not None else '(none)'}",
                    f"Exit Code: {exit_code if exit_code is not None else '(none)'}",
                    f"Signal: {exit_signal or '(none)'}",
                    "Background PIDs: "
                    + (", ".join(str(pid) for pid in background_pids) or "(none)"),
                    f"Process Group PGID: {process.pid if process is not None else '(none)'}",
                ]
            )

        if self.debug:
            return_display = llm_content
        elif output.strip():
            return_display = output
        elif cancelled:
            return_display = "Command cancelled by user."
        elif exit_signal:
            return_display = f"Command terminated by signal: {exit_signal}"
        elif error is not None:
            return_display = f"Command failed: {error}"
        elif exit_code:
            return_display = f"Command exited with code: {exit_code}"
        else:
            return_display = ""

        log.info(
            "shell_command_finished",
            command=command,
            exit_code=exit_code,
            signal=exit_signal,
            cancelled=cancelled,
        )
        return ToolResult(llm_content=llm_content, return_display=return_display)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """SIGTERM the process group, then SIGKILL it after a short grace period."""
        if process.returncode is not None:
            return
        if sys.platform == "win32":
            process.kill()
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
            await asyncio.sleep(_KILL_GRACE_SECONDS)
            if process.returncode is None:
                os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except PermissionError:
            log.warning("shell_group_kill_failed", pid=process.pid, exc_info=True)
            process.kill()

    @staticmethod
    def _read_background_pids(
        pgrep_file: Path, process: asyncio.subprocess.Process | None
    ) -> list[int]:
        if not pgrep_file.exists():
            return []
        pids: list[int] = []
        try:
            for line in pgrep_file.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if not line.isdigit():
                    if line:
                        log.debug("pgrep_output_ignored", line=line)
                    continue
                pid = int(line)
                if process is None or pid != process.pid:
                    pids.append(pid)
        finally:
            pgrep_file.unlink(missing_ok=True)
        return pids
