"""Tests for the bash execution tool."""

import sys
from unittest.mock import patch

import pytest

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="run_command needs bash")


@pytest.fixture
def mock_settings(tmp_path):
    """Mock settings with small limits."""
    with patch("app.tools.shell.get_settings") as ms:
        ms.return_value.max_output_chars = 10000
        ms.return_value.shell_timeout_seconds = 10
        yield tmp_path


class TestRunCommand:
    def test_success(self, mock_settings):
        from app.tools.shell import run_command

        (mock_settings / "a.txt").write_text("x")
        result = run_command("ls", str(mock_settings))
        assert result.ok
        assert result.exit_code == 0
        assert "a.txt" in result.output

    def test_runs_in_working_directory(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("pwd", str(mock_settings))
        assert result.output.strip() == str(mock_settings.resolve())

    def test_non_zero_exit(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("exit 3", str(mock_settings))
        assert not result.ok
        assert result.exit_code == 3
        assert "Exit code: 3" in result.describe_failure()

    def test_stderr_is_combined_with_stdout(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("echo out; echo err >&2", str(mock_settings))
        assert "out" in result.output
        assert "err" in result.output

    def test_bash_features_available(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("for i in 1 2; do echo n$i; done | wc -l", str(mock_settings))
        assert result.output.strip() == "2"

    def test_command_not_found_output(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("definitely_not_a_real_command_xyz", str(mock_settings))
        assert result.exit_code == 127
        assert "not found" in result.output

    def test_timeout(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("sleep 5", str(mock_settings), timeout=0.5)
        assert result.timed_out
        assert not result.ok
        assert "TIMEOUT" in result.output
        assert "Timed out" in result.describe_failure()

    def test_missing_working_directory(self, mock_settings):
        from app.tools.shell import run_command

        result = run_command("ls", str(mock_settings / "missing"))
        assert not result.ok
        assert result.exit_code is None
        assert "does not exist" in result.error
        assert "Could not start command" in result.describe_failure()

    def test_output_truncated(self, mock_settings):
        from app.tools.shell import run_command

        with patch("app.tools.shell.get_settings") as ms:
            ms.return_value.max_output_chars = 100
            ms.return_value.shell_timeout_seconds = 10
            result = run_command("head -c 1000 /dev/zero | tr '\\0' 'a'", str(mock_settings))
        assert "truncated" in result.output
        assert len(result.output) < 1000


class TestDescribeFailure:
    def test_includes_command_and_output(self):
        from app.tools.shell import CommandResult

        report = CommandResult(command="cat nope", output="cat: nope: No such file", exit_code=1).describe_failure()
        assert report.startswith("Command execution failed: cat nope")
        assert "Output: cat: nope: No such file" in report

    def test_omits_empty_output(self):
        from app.tools.shell import CommandResult

        report = CommandResult(command="false", output="", exit_code=1).describe_failure()
        assert "Output:" not in report
