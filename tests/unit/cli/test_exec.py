"""Unit tests for exec command."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from fakes import RecordingExecutor
from prefctl.cli.main import app
from prefctl.core.controller import Reconciler
from typer.testing import CliRunner

runner = CliRunner()

BUILD = "prefctl.cli.commands.execute.build_reconciler"

COMMANDS_CONFIG = """\
[vars]
name = "world"

[commands.hello]
run = "echo hello $name"

[commands.prepare]
run = "mkdir -p /tmp/prefctl"
ensure_first = true

[commands.audio]
run = "killall coreaudiod"
sudo = true
flag = true
"""


@pytest.fixture
def commands_file(tmp_path: Path) -> Path:
    """A config with only commands."""
    path = tmp_path / "prefctl.toml"
    path.write_text(COMMANDS_CONFIG, encoding="utf-8")
    return path


class TestExecHelp:
    """Tests for exec command help."""

    def test_exec_help(self) -> None:
        """Exec command shows help."""
        result = runner.invoke(app, ["exec", "--help"])
        assert result.exit_code == 0
        assert "--flagged" in result.stdout
        assert "--all" in result.stdout


class TestExec:
    """Tests for running configured commands."""

    def test_regular_commands(
        self,
        commands_file: Path,
        executor: RecordingExecutor,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """Regular commands run; ensure_first commands start first."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec"])

        assert result.exit_code == 0, result.output
        assert executor.started == ["mkdir -p /tmp/prefctl", "echo hello world"]
        assert "2 succeeded" in result.stdout

    def test_flagged_only(
        self,
        commands_file: Path,
        executor: RecordingExecutor,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """--flagged runs only flagged commands, elevated where declared."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec", "--flagged"])

        assert result.exit_code == 0
        assert executor.started == ["killall coreaudiod"]
        assert executor.elevated == ["killall coreaudiod"]

    def test_by_name(
        self,
        commands_file: Path,
        executor: RecordingExecutor,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """A named command runs even if it is flagged."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec", "audio"])

        assert result.exit_code == 0
        assert executor.started == ["killall coreaudiod"]

    def test_unknown_name(
        self,
        commands_file: Path,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """An undeclared name exits 1."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec", "nope"])

        assert result.exit_code == 1
        assert "nope" in result.output

    def test_failure_exits_1(
        self,
        commands_file: Path,
        executor: RecordingExecutor,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """A non-zero exit status fails the run."""
        executor.returncodes["echo hello world"] = 2

        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec"])

        assert result.exit_code == 1
        assert "1 failed" in result.stdout

    def test_dry_run(
        self,
        commands_file: Path,
        executor: RecordingExecutor,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """A dry run prints resolved lines without spawning."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(commands_file), "exec", "--dry-run"])

        assert result.exit_code == 0
        assert "echo hello world" in result.stdout
        assert executor.started == []

    def test_all_and_flagged_conflict(self, commands_file: Path) -> None:
        """--all and --flagged cannot be combined."""
        result = runner.invoke(
            app, ["--config", str(commands_file), "exec", "--all", "--flagged"]
        )

        assert result.exit_code != 0

    def test_no_commands(self, tmp_path: Path) -> None:
        """A config without commands prints a notice."""
        path = tmp_path / "prefctl.toml"
        path.write_text("[set.dock]\ntilesize = 46\n", encoding="utf-8")

        result = runner.invoke(app, ["--config", str(path), "exec"])

        assert result.exit_code == 0
        assert "No commands" in result.stdout
