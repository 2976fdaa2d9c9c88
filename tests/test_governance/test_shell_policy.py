"""Tests for the shell command safety policy."""

import pytest

from agent_runtime.governance import (
    CommandPermissions,
    PermissionResult,
    ShellPolicyConfig,
    check_command_permissions,
    detect_command_substitution,
    get_command_root,
    get_command_roots,
    is_command_allowed,
    split_commands,
    strip_shell_wrapper,
)
from agent_runtime.governance.shell_policy import (
    GLOBALLY_DISABLED_REASON,
    NOT_IN_SESSION_ALLOWLIST_REASON,
    SUBSTITUTION_REASON,
)


class TestStripShellWrapper:
    """Test shell wrapper removal."""

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ('bash -c "ls -l"', "ls -l"),
            ("sh -c 'echo hi'", "echo hi"),
            ("zsh -c git status", "git status"),
            ('cmd.exe /c "dir"', "dir"),
            ("  ls -la  ", "ls -la"),
        ],
    )
    def test_strip(self, command: str, expected: str) -> None:
        """Test wrappers and one surrounding quote pair are removed."""
        assert strip_shell_wrapper(command) == expected

    def test_non_wrapper_left_alone(self) -> None:
        """Test a command merely starting with 'bash' is unchanged."""
        assert strip_shell_wrapper("bashful -c x") == "bashful -c x"


class TestSplitCommands:
    """Test chained command splitting."""

    def test_split_on_operators(self) -> None:
        """Test &&, ||, ;, | and & all separate commands."""
        assert split_commands("a && b || c; d | e & f") == ["a", "b", "c", "d", "e", "f"]

    def test_operators_inside_quotes_not_split(self) -> None:
        """Test quoted operators stay in their segment."""
        assert split_commands("echo 'a && b' && echo \"c; d\"") == [
            "echo 'a && b'",
            'echo "c; d"',
        ]

    def test_escaped_operator_not_split(self) -> None:
        """Test a backslash keeps the next character in the segment."""
        assert split_commands("echo a\\;b") == ["echo a\\;b"]

    def test_empty_segments_dropped(self) -> None:
        """Test empty segments are discarded."""
        assert split_commands("ls;; ;") == ["ls"]

    def test_newlines_separate_commands(self) -> None:
        """Test unquoted newlines and carriage returns end a command."""
        assert split_commands("echo ok\ntouch x\r\nls") == ["echo ok", "touch x", "ls"]

    def test_quoted_newline_not_split(self) -> None:
        """Test a newline inside quotes stays in its segment."""
        assert split_commands("echo 'a\nb' && ls") == ["echo 'a\nb'", "ls"]


class TestCommandRoots:
    """Test command root extraction."""

    def test_roots_of_chained_command(self) -> None:
        """Test roots of each segment are returned in order."""
        assert get_command_roots('git commit -m "feat: x" && echo done') == ["git", "echo"]

    def test_path_stripped_to_basename(self) -> None:
        """Test a path is reduced to its last component."""
        assert get_command_root("/usr/local/bin/node script.js") == "node"

    def test_quoted_root_unquoted(self) -> None:
        """Test a quoted first token is unquoted."""
        assert get_command_root('"my tool" --flag') == "my tool"

    def test_blank_input(self) -> None:
        """Test blank input has no root."""
        assert get_command_root("   ") is None
        assert get_command_roots("") == []


class TestDetectCommandSubstitution:
    """Test substitution detection follows bash quoting rules."""

    @pytest.mark.parametrize(
        "command",
        [
            "echo $(whoami)",
            "echo `whoami`",
            "diff <(ls a) <(ls b)",
            "tee >(cat)",
            'echo "$(whoami)"',
            'echo "`whoami`"',
        ],
    )
    def test_executable_substitutions_detected(self, command: str) -> None:
        """Test unquoted and double-quoted substitutions are detected."""
        assert detect_command_substitution(command) is True

    @pytest.mark.parametrize(
        "command",
        [
            "echo '$(whoami)'",
            "echo '`whoami`'",
            "echo '<(ls)'",
            'echo "<(ls)"',
            "echo \\$(whoami)",
            "echo price is $5",
            "ls -la",
        ],
    )
    def test_literal_constructs_ignored(self, command: str) -> None:
        """Test single-quoted, escaped and harmless text is not flagged."""
        assert detect_command_substitution(command) is False


class TestIsCommandAllowed:
    """Test admission decisions."""

    def test_block_list_rejects(self) -> None:
        """Test a blocked command is rejected with a configuration reason."""
        config = ShellPolicyConfig(exclude_tools=["ShellTool(rm -rf /)"])
        result = is_command_allowed("rm -rf /", config)
        assert isinstance(result, PermissionResult)
        assert not result.allowed
        assert "blocked by configuration" in result.reason

    def test_allow_list_names_offending_segment(self) -> None:
        """Test the first segment outside the allow list is named."""
        config = ShellPolicyConfig(core_tools=["ShellTool(echo)"])
        result = is_command_allowed("echo hello && rm -rf /", config)
        assert not result.allowed
        assert "rm -rf /" in result.reason
        assert "not in the allowed commands list" in result.reason

    def test_allowed_chain(self) -> None:
        """Test every segment matching the allow list is admitted."""
        config = ShellPolicyConfig(core_tools=["ShellTool(echo)", "ShellTool(git status)"])
        assert is_command_allowed("echo a && git status", config).allowed

    def test_no_allow_list_admits_everything(self) -> None:
        """Test without an allow list any non-blocked command runs."""
        assert is_command_allowed("make build", ShellPolicyConfig()).allowed

    def test_wildcard_allow_entry(self) -> None:
        """Test a bare shell tool name admits any command."""
        config = ShellPolicyConfig(core_tools=["run_shell_command"])
        assert is_command_allowed("anything --goes", config).allowed

    def test_allow_list_without_shell_entry_admits_nothing(self) -> None:
        """Test an allow list naming only other tools rejects shell commands."""
        config = ShellPolicyConfig(core_tools=["read_file"])
        assert not is_command_allowed("ls", config).allowed

    def test_empty_allow_list_admits_nothing(self) -> None:
        """Test an explicitly empty allow list is strict."""
        assert not is_command_allowed("ls", ShellPolicyConfig(core_tools=[])).allowed

    def test_prefix_match_is_whole_word(self) -> None:
        """Test 'git' admits 'git status' but not 'gitk'."""
        config = ShellPolicyConfig(core_tools=["ShellTool(git)"])
        assert is_command_allowed("git status", config).allowed
        assert not is_command_allowed("gitk", config).allowed

    def test_block_overrides_allow(self) -> None:
        """Test block-list membership wins over allow-list membership."""
        config = ShellPolicyConfig(
            core_tools=["ShellTool(git)"], exclude_tools=["ShellTool(git push)"]
        )
        result = is_command_allowed("git push origin main", config)
        assert not result.allowed
        assert "blocked by configuration" in result.reason

    def test_block_overrides_wildcard(self) -> None:
        """Test blocked prefixes are rejected even with a wildcard allow."""
        config = ShellPolicyConfig(core_tools=["ShellTool"], exclude_tools=["ShellTool(rm)"])
        assert not is_command_allowed("rm file", config).allowed

    def test_newline_segment_checked_against_allow_list(self) -> None:
        """Test a command on a second line must be allowed on its own."""
        config = ShellPolicyConfig(core_tools=["ShellTool(echo)"])
        result = is_command_allowed("echo ok\ntouch pwned", config)
        assert not result.allowed
        assert "'touch pwned' is not in the allowed commands list" in result.reason

    def test_newline_segment_checked_against_block_list(self) -> None:
        """Test a blocked command on a second line is rejected."""
        config = ShellPolicyConfig(
            core_tools=["ShellTool(echo)"], exclude_tools=["ShellTool(rm)"]
        )
        result = is_command_allowed("echo ok\nrm -rf x", config)
        assert not result.allowed
        assert "blocked by configuration" in result.reason

    @pytest.mark.parametrize("command", ["echo $(id)", "echo `id`", "cat <(ls)"])
    def test_substitution_rejected_regardless_of_allow_list(self, command: str) -> None:
        """Test substitution is rejected even when everything is allowed."""
        config = ShellPolicyConfig(core_tools=["run_shell_command"])
        result = is_command_allowed(command, config)
        assert not result.allowed
        assert result.reason == SUBSTITUTION_REASON

    def test_single_quoted_substitution_allowed(self) -> None:
        """Test single-quoted substitution text is not a rejection reason."""
        assert is_command_allowed("echo '$(id)'", ShellPolicyConfig()).allowed

    def test_globally_disabled(self) -> None:
        """Test a bare shell tool name in the block list disables the tool."""
        config = ShellPolicyConfig(exclude_tools=["run_shell_command"])
        result = is_command_allowed("ls", config)
        assert not result.allowed
        assert result.reason == GLOBALLY_DISABLED_REASON

    def test_wrapper_is_stripped_before_checks(self) -> None:
        """Test 'bash -c' does not hide a blocked command."""
        config = ShellPolicyConfig(exclude_tools=["ShellTool(rm)"])
        assert not is_command_allowed('bash -c "rm -rf build"', config).allowed

    def test_whitespace_normalized(self) -> None:
        """Test extra whitespace does not bypass the block list."""
        config = ShellPolicyConfig(exclude_tools=["ShellTool(rm -rf)"])
        assert not is_command_allowed("rm    -rf build", config).allowed

    def test_permission_result_truthiness(self) -> None:
        """Test PermissionResult can be used as a bool."""
        assert PermissionResult(True)
        assert not PermissionResult(False, "nope")


class TestCheckCommandPermissions:
    """Test detailed permission reports."""

    def test_all_allowed_without_lists(self) -> None:
        """Test default-allow mode admits unlisted commands."""
        report = check_command_permissions("ls && pwd", ShellPolicyConfig())
        assert isinstance(report, CommandPermissions)
        assert report.all_allowed

    def test_block_is_hard_denial(self) -> None:
        """Test block-list hits are hard denials."""
        config = ShellPolicyConfig(exclude_tools=["ShellTool(rm)"])
        report = check_command_permissions("ls && rm x", config)
        assert not report.all_allowed
        assert report.is_hard_denial
        assert report.disallowed_commands == ["rm x"]

    def test_session_allowlist_default_deny(self) -> None:
        """Test a session allowlist switches to default deny and lists every miss."""
        config = ShellPolicyConfig(core_tools=["ShellTool(git)"])
        report = check_command_permissions("git log && npm test && make", config, {"npm test"})
        assert not report.all_allowed
        assert not report.is_hard_denial
        assert report.disallowed_commands == ["make"]
        assert report.block_reason == NOT_IN_SESSION_ALLOWLIST_REASON

    def test_session_allowlist_admits(self) -> None:
        """Test segments on the session allowlist are admitted."""
        report = check_command_permissions("npm test", ShellPolicyConfig(), {"npm"})
        assert report.all_allowed

    def test_substitution_is_hard_denial(self) -> None:
        """Test substitution is a hard denial in the detailed report."""
        report = check_command_permissions("echo $(id)", ShellPolicyConfig(), set())
        assert report.is_hard_denial
        assert report.block_reason == SUBSTITUTION_REASON
