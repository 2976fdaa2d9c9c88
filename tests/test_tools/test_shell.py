"""Tests for the run_shell_command tool."""

from pathlib import Path

import pytest

from agent_runtime.governance import ShellPolicyConfig
from agent_runtime.tools.shell import SHELL_TOOL_NAME, ShellTool
from agent_runtime.tools.types import (
    CancellationToken,
    ToolConfirmationOutcome,
    ToolExecConfirmationDetails,
)


@pytest.fixture
def shell(tmp_path: Path) -> ShellTool:
    return ShellTool(ShellPolicyConfig(), tmp_path)


def test_schema(shell: ShellTool) -> None:
    """Test the declaration exposes the shell parameters."""
    assert shell.name == SHELL_TOOL_NAME
    assert shell.display_name == "Shell"
    assert shell.schema["parameters"]["required"] == ["command"]


class TestValidateParams:
    """Test rejection reasons computed before spawning."""

    def test_empty_command(self, shell: ShellTool) -> None:
        """Test an empty command is rejected."""
        assert shell.validate_params({"command": "  "}) == "Command cannot be empty."

    def test_policy_rejection(self, tmp_path: Path) -> None:
        """Test the policy reason is returned for blocked commands."""
        tool = ShellTool(ShellPolicyConfig(exclude_tools=["ShellTool(rm)"]), tmp_path)
        reason = tool.validate_params({"command": "rm -rf build"})
        assert reason is not None
        assert "blocked by configuration" in reason

    def test_absolute_directory(self, shell: ShellTool) -> None:
        """Test absolute directories are rejected."""
        reason = shell.validate_params({"command": "ls", "directory": "/tmp"})
        assert reason is not None
        assert "cannot be absolute" in reason

    def test_directory_escaping_root(self, shell: ShellTool) -> None:
        """Test directories outside the project root are rejected."""
        reason = shell.validate_params({"command": "ls", "directory": "../"})
        assert reason == "Directory must be inside the project root directory."

    def test_missing_directory(self, shell: ShellTool) -> None:
        """Test a directory that does not exist is rejected."""
        assert shell.validate_params({"command": "ls", "directory": "nope"}) == (
            "Directory must exist."
        )

    def test_valid(self, shell: ShellTool, tmp_path: Path) -> None:
        """Test a valid command and existing directory pass."""
        (tmp_path / "sub").mkdir()
        assert shell.validate_params({"command": "ls", "directory": "sub"}) is None


class TestConfirmation:
    """Test root-keyed confirmation."""

    @pytest.mark.asyncio
    async def test_asks_with_roots(self, shell: ShellTool) -> None:
        """Test confirmation lists every command root."""
        details = await shell.should_confirm_execute(
            {"command": "git status && echo done"}, CancellationToken()
        )
        assert isinstance(details, ToolExecConfirmationDetails)
        assert details.root_command == "git, echo"
        assert details.command == "git status && echo done"

    @pytest.mark.asyncio
    async def test_proceed_always_whitelists_roots(self, shell: ShellTool) -> None:
        """Test 'proceed always' skips later confirmations for the same roots only."""
        token = CancellationToken()
        details = await shell.should_confirm_execute({"command": "git status"}, token)
        assert details
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ALWAYS)

        assert await shell.should_confirm_execute({"command": "git log"}, token) is False
        assert await shell.should_confirm_execute({"command": "git log && make"}, token)

    @pytest.mark.asyncio
    async def test_whitelist_checks_every_line(self, shell: ShellTool) -> None:
        """Test a whitelisted root does not cover commands on later lines."""
        token = CancellationToken()
        details = await shell.should_confirm_execute({"command": "git status"}, token)
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ALWAYS)

        details = await shell.should_confirm_execute({"command": "git log\nrm x"}, token)
        assert isinstance(details, ToolExecConfirmationDetails)
        assert details.root_command == "git, rm"

    @pytest.mark.asyncio
    async def test_proceed_once_does_not_whitelist(self, shell: ShellTool) -> None:
        """Test 'proceed once' leaves the whitelist unchanged."""
        token = CancellationToken()
        details = await shell.should_confirm_execute({"command": "ls"}, token)
        await details.on_confirm(ToolConfirmationOutcome.PROCEED_ONCE)
        assert shell.whitelist == set()

    @pytest.mark.asyncio
    async def test_invalid_command_skips_confirmation(self, tmp_path: Path) -> None:
        """Test rejected commands do not ask; execute reports the rejection."""
        tool = ShellTool(ShellPolicyConfig(core_tools=["ShellTool(git)"]), tmp_path)
        assert await tool.should_confirm_execute({"command": "rm x"}, CancellationToken()) is False


class TestExecute:
    """Test running commands."""

    @pytest.mark.asyncio
    async def test_rejected_command_not_spawned(self, tmp_path: Path) -> None:
        """Test a policy rejection is a domain error naming the command."""
        tool = ShellTool(ShellPolicyConfig(exclude_tools=["ShellTool(touch)"]), tmp_path)
        result = await tool.execute({"command": "touch marker"}, CancellationToken())

        assert result.error is not None
        assert result.error.type == "policy_rejected"
        assert result.llm_content.startswith("Command rejected: touch marker")
        assert not (tmp_path / "marker").exists()

    @pytest.mark.asyncio
    async def test_second_line_outside_allow_list_not_spawned(self, tmp_path: Path) -> None:
        """Test a disallowed command on its own line rejects the whole input."""
        tool = ShellTool(ShellPolicyConfig(core_tools=["ShellTool(echo)"]), tmp_path)
        result = await tool.execute({"command": "echo ok\ntouch pwned"}, CancellationToken())

        assert result.error is not None
        assert result.error.type == "policy_rejected"
        assert not (tmp_path / "pwned").exists()

    @pytest.mark.asyncio
    async def test_substitution_rejected(self, shell: ShellTool) -> None:
        """Test command substitution is never executed."""
        result = await shell.execute({"command": "echo $(whoami)"}, CancellationToken())
        assert result.error is not None
        assert "Command substitution" in result.error.message

    @pytest.mark.asyncio
    async def test_runs_command(self, shell: ShellTool) -> None:
        """Test a successful run reports the full result block."""
        result = await shell.execute({"command": "echo hello"}, CancellationToken())

        assert result.error is None
        assert "Command: echo hello" in result.llm_content
        assert "Directory: (root)" in result.llm_content
        assert "Stdout: hello" in result.llm_content
        assert "Exit Code: 0" in result.llm_content
        assert result.return_display == "hello\n"

    @pytest.mark.asyncio
    async def test_runs_in_directory(self, shell: ShellTool, tmp_path: Path) -> None:
        """Test the command runs in the requested subdirectory."""
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "inner.txt").write_text("x")
        result = await shell.execute({"command": "ls", "directory": "sub"}, CancellationToken())
        assert "inner.txt" in result.llm_content
        assert "Directory: sub" in result.llm_content

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, shell: ShellTool) -> None:
        """Test a failing command reports its exit code without raising."""
        result = await shell.execute({"command": "exit 4"}, CancellationToken())
        assert "Exit Code: 4" in result.llm_content
        assert result.return_display == "Command exited with code: 4"

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, shell: ShellTool, tmp_path: Path) -> None:
        """Test a cancelled token prevents spawning."""
        token = CancellationToken()
        token.cancel()
        result = await shell.execute({"command": "touch marker"}, token)
        assert "before it could start" in result.llm_content
        assert not (tmp_path / "marker").exists()

    @pytest.mark.asyncio
    async def test_debug_shows_full_block(self, tmp_path: Path) -> None:
        """Test debug mode displays the model-facing block."""
        tool = ShellTool(ShellPolicyConfig(), tmp_path, debug=True)
        result = await tool.execute({"command": "true"}, CancellationToken())
        assert result.return_display == result.llm_content
