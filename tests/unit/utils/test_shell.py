"""Unit tests for shell execution utilities."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from prefctl.utils.shell import CommandResult, command_exists, run_command


class TestCommandResult:
    """Tests for CommandResult dataclass."""

    def test_success_on_zero(self) -> None:
        """Zero exit code is success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success is True

    def test_failure_on_nonzero(self) -> None:
        """Nonzero exit code is failure."""
        assert CommandResult(stdout="", stderr="boom", returncode=2).success is False

    def test_output_combines_streams(self) -> None:
        """output is stdout followed by stderr."""
        assert CommandResult(stdout="a\n", stderr="b\n", returncode=0).output == "a\nb\n"

    def test_error_text(self) -> None:
        """error_text trims stderr and falls back to a placeholder."""
        assert CommandResult(stdout="", stderr=" boom\n", returncode=1).error_text == "boom"
        assert CommandResult(stdout="", stderr="", returncode=1).error_text == "unknown error"

    def test_lines(self) -> None:
        """lines drops blank lines and surrounding whitespace."""
        result = CommandResult(stdout="git\n\n  wget \n", stderr="", returncode=0)

        assert result.lines() == ["git", "wget"]


class TestRunCommand:
    """Tests for run_command function."""

    @patch("prefctl.utils.shell.subprocess.run")
    def test_returns_captured_output(self, mock_run: MagicMock) -> None:
        """run_command wraps stdout, stderr and the exit code."""
        mock_run.return_value = MagicMock(stdout="out\n", stderr="err\n", returncode=3)

        result = run_command(["defaults", "domains"])

        assert result == CommandResult(stdout="out\n", stderr="err\n", returncode=3)

    @patch("prefctl.utils.shell.subprocess.run")
    def test_captures_text_output(self, mock_run: MagicMock) -> None:
        """run_command captures output as text."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["brew", "tap"])

        kwargs = mock_run.call_args.kwargs
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["check"] is False

    @patch("prefctl.utils.shell.subprocess.run")
    def test_passes_timeout(self, mock_run: MagicMock) -> None:
        """run_command forwards the timeout."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["killall", "Dock"], timeout=10.0)

        assert mock_run.call_args.kwargs["timeout"] == 10.0

    @patch("prefctl.utils.shell.subprocess.run")
    def test_propagates_timeout(self, mock_run: MagicMock) -> None:
        """run_command lets TimeoutExpired propagate."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=["brew"], timeout=1)

        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["brew", "list"], timeout=1)

    def test_raises_file_not_found(self) -> None:
        """run_command raises FileNotFoundError for missing commands."""
        with pytest.raises(FileNotFoundError):
            run_command(["nonexistent_command_xyz_12345"])


class TestCommandExists:
    """Tests for command_exists function."""

    @patch("prefctl.utils.shell.shutil.which", return_value="/usr/bin/defaults")
    def test_found(self, mock_which: MagicMock) -> None:
        """command_exists is True when which finds the binary."""
        assert command_exists("defaults") is True
        mock_which.assert_called_once_with("defaults")

    @patch("prefctl.utils.shell.shutil.which", return_value=None)
    def test_not_found(self, mock_which: MagicMock) -> None:
        """command_exists is False when which finds nothing."""
        assert command_exists("brew") is False
