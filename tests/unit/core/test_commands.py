"""Unit tests for command substitution and orchestration."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from fakes import RecordingExecutor
from prefctl.adapters.base import ProcessExecutor
from prefctl.adapters.process import DryRunExecutor
from prefctl.core.commands import CommandOrchestrator, ExecMode, substitute
from prefctl.core.errors import VariableResolutionError
from prefctl.models.result import OutcomeStatus
from prefctl.models.target import CommandSpec


def _orchestrator(executor: ProcessExecutor, **kwargs: Any) -> CommandOrchestrator:
    kwargs.setdefault("environ", {})
    kwargs.setdefault("which", lambda name: True)
    return CommandOrchestrator(executor, **kwargs)


class TestSubstitute:
    """Tests for substitute."""

    def test_both_forms(self) -> None:
        """$NAME and ${NAME} are both replaced."""
        result = substitute("echo $greeting ${who}!", {"greeting": "hi", "who": "there"}, {})

        assert result == "echo hi there!"

    def test_environment_fallback(self) -> None:
        """Undefined variables fall back to the environment."""
        assert substitute("cd $HOME", {}, {"HOME": "/Users/me"}) == "cd /Users/me"

    def test_variables_win_over_environment(self) -> None:
        """The variable table shadows the environment."""
        assert substitute("$USER", {"USER": "config"}, {"USER": "env"}) == "config"

    def test_escaped_dollar(self) -> None:
        """$$ is a literal dollar sign."""
        assert substitute("echo $$HOME costs $$5", {}, {}) == "echo $HOME costs $5"

    def test_shell_syntax_untouched(self) -> None:
        """Positional parameters and command substitution are left alone."""
        assert substitute("echo $1 $(date)", {}, {}) == "echo $1 $(date)"

    def test_undefined_variables(self) -> None:
        """Every unresolved name is reported once."""
        with pytest.raises(VariableResolutionError) as exc_info:
            substitute("$a $b $a", {}, {}, command_name="setup")

        assert exc_info.value.missing == ["a", "b"]
        assert exc_info.value.command == "setup"


class TestExecMode:
    """Tests for ExecMode selection."""

    def test_includes(self) -> None:
        """Each mode selects the right commands."""
        regular = CommandSpec("a", "true")
        flagged = CommandSpec("b", "true", flagged=True)

        assert ExecMode.REGULAR.includes(regular) and not ExecMode.REGULAR.includes(flagged)
        assert ExecMode.FLAGGED.includes(flagged) and not ExecMode.FLAGGED.includes(regular)
        assert ExecMode.ALL.includes(regular) and ExecMode.ALL.includes(flagged)


class TestOrchestrator:
    """Tests for CommandOrchestrator.run."""

    def test_ensure_first_runs_before_others(self) -> None:
        """Sequential commands finish, in order, before any concurrent one starts."""
        executor = RecordingExecutor(delay=0.01)
        commands = [
            CommandSpec("C", "cmd-c"),
            CommandSpec("A", "cmd-a", run_first=True),
            CommandSpec("D", "cmd-d"),
            CommandSpec("B", "cmd-b", run_first=True),
        ]

        report = _orchestrator(executor).run(commands, {})

        assert executor.index("end", "cmd-a") < executor.index("start", "cmd-b")
        first_parallel = min(executor.index("start", "cmd-c"), executor.index("start", "cmd-d"))
        assert executor.index("end", "cmd-b") < first_parallel
        assert [o.name for o in report.outcomes] == ["A", "B", "C", "D"]
        assert report.ok

    def test_outcomes_in_declaration_order(self) -> None:
        """Concurrent outcomes are reported in declaration order."""
        executor = RecordingExecutor()
        commands = [CommandSpec(name, f"cmd-{name}") for name in "edcba"]

        report = _orchestrator(executor, max_workers=5).run(commands, {})

        assert [o.name for o in report.outcomes] == list("edcba")
        assert sorted(executor.started) == sorted(f"cmd-{n}" for n in "edcba")

    def test_failure_is_isolated(self) -> None:
        """A failing command does not stop the others."""
        executor = RecordingExecutor()
        executor.returncodes["cmd-a"] = 2
        commands = [CommandSpec("a", "cmd-a", run_first=True), CommandSpec("b", "cmd-b")]

        report = _orchestrator(executor).run(commands, {})

        assert report.outcomes[0].status == OutcomeStatus.FAILED
        assert report.outcomes[0].error == "exited with status 2"
        assert report.outcomes[1].succeeded

    def test_fail_fast(self) -> None:
        """With fail_fast, later commands are skipped after a failure."""
        executor = RecordingExecutor()
        executor.returncodes["cmd-a"] = 1
        commands = [
            CommandSpec("a", "cmd-a", run_first=True),
            CommandSpec("b", "cmd-b", run_first=True),
            CommandSpec("c", "cmd-c"),
        ]

        report = _orchestrator(executor, fail_fast=True).run(commands, {})

        assert [o.status for o in report.outcomes] == [
            OutcomeStatus.FAILED,
            OutcomeStatus.SKIPPED,
            OutcomeStatus.SKIPPED,
        ]
        assert executor.started == ["cmd-a"]

    def test_mode_filters(self) -> None:
        """Flagged commands only run when requested."""
        executor = RecordingExecutor()
        commands = [CommandSpec("a", "cmd-a"), CommandSpec("b", "cmd-b", flagged=True)]

        regular = _orchestrator(executor).run(commands, {})
        flagged = _orchestrator(executor).run(commands, {}, ExecMode.FLAGGED)

        assert [o.name for o in regular.outcomes] == ["a"]
        assert [o.name for o in flagged.outcomes] == ["b"]

    def test_missing_binary_skips(self) -> None:
        """Commands whose required binaries are missing are skipped."""
        executor = RecordingExecutor()
        command = CommandSpec("mas", "mas install 1", required=("mas",))

        report = _orchestrator(executor, which=lambda name: False).run([command], {})

        assert report.outcomes[0].skipped
        assert "mas" in (report.outcomes[0].error or "")
        assert executor.started == []

    def test_undefined_variable_fails_without_running(self) -> None:
        """An unresolved template is a failure and nothing is spawned."""
        executor = RecordingExecutor()

        report = _orchestrator(executor).run([CommandSpec("w", "set $nothing")], {})

        assert report.outcomes[0].failed
        assert "nothing" in (report.outcomes[0].error or "")
        assert executor.started == []
        assert report.executed_names == []

    def test_elevated_flag_passed(self) -> None:
        """Elevated commands reach the executor as elevated."""
        executor = RecordingExecutor()

        _orchestrator(executor).run([CommandSpec("s", "mdutil -i off /", elevated=True)], {})

        assert executor.elevated == ["mdutil -i off /"]

    def test_spawn_error(self) -> None:
        """An executor OSError becomes a failed outcome."""
        executor = RecordingExecutor()
        executor.run = MagicMock(side_effect=OSError("no sh"))  # type: ignore[method-assign]

        report = _orchestrator(executor).run([CommandSpec("a", "true")], {})

        assert report.outcomes[0].failed
        assert "no sh" in (report.outcomes[0].error or "")

    def test_dry_run_records_lines(self) -> None:
        """A dry-run executor receives the substituted lines."""
        executor = DryRunExecutor()

        report = _orchestrator(executor).run(
            [CommandSpec("w", "set ${pic}", elevated=True)], {"pic": "/tmp/a.heic"}
        )

        assert report.dry_run
        assert executor.commands == [("set /tmp/a.heic", True)]
        assert report.outcomes[0].command_line == "set /tmp/a.heic"

    def test_run_one_ignores_flags(self) -> None:
        """A single named command runs even if flagged."""
        executor = RecordingExecutor()

        report = _orchestrator(executor).run_one(CommandSpec("b", "cmd-b", flagged=True), {})

        assert report.outcomes[0].succeeded
        assert executor.started == ["cmd-b"]
