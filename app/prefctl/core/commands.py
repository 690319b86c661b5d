"""Auxiliary command orchestration.

Commands declared in ``[commands.<name>]`` run after preferences are
written. Commands marked ``ensure_first`` run one after another in
declaration order; the rest are dispatched together on a thread pool and
joined before anything is reported.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
import re
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from prefctl.core.errors import VariableResolutionError
from prefctl.models.result import CommandOutcome, CommandRunReport, OutcomeStatus
from prefctl.utils.shell import command_exists

if TYPE_CHECKING:
    from prefctl.adapters.base import ProcessExecutor
    from prefctl.models.target import CommandSpec

logger = logging.getLogger(__name__)

# $$, ${NAME} or $NAME
_VAR_PATTERN = re.compile(r"\$(?:(\$)|\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


def substitute(
    template: str,
    variables: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
    command_name: str = "<template>",
) -> str:
    """Resolve ``$NAME`` and ``${NAME}`` placeholders in a command template.

    Names resolve against ``variables`` first, then the environment.
    ``$$`` produces a literal ``$``. A ``$`` not followed by a name
    (``$(...)``, ``$1``) is left for the shell.

    Examples:
        ``substitute("echo $greeting", {"greeting": "hi"})`` -> ``"echo hi"``
        ``substitute("cost: $$5", {})`` -> ``"cost: $5"``

    Raises:
        VariableResolutionError: If any name resolves in neither table.
    """
    env = os.environ if environ is None else environ
    missing: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        if match.group(1):
            return "$"
        name = match.group(2) or match.group(3)
        if name in variables:
            return variables[name]
        if name in env:
            return env[name]
        if name not in missing:
            missing.append(name)
        return match.group(0)

    resolved = _VAR_PATTERN.sub(_replace, template)
    if missing:
        raise VariableResolutionError(command_name, missing)
    return resolved


class ExecMode(str, Enum):
    """Which declared commands a run considers.

    Attributes:
        REGULAR: Only commands without ``flag``.
        ALL: Every command.
        FLAGGED: Only commands with ``flag``.
    """

    REGULAR = "regular"
    ALL = "all"
    FLAGGED = "flagged"

    def includes(self, command: CommandSpec) -> bool:
        """Check if a command is selected by this mode."""
        if self == ExecMode.ALL:
            return True
        if self == ExecMode.FLAGGED:
            return command.flagged
        return not command.flagged


class CommandOrchestrator:
    """Runs auxiliary commands through a process executor.

    Passing a DryRunExecutor gives a dry run with the same ordering,
    substitution and bookkeeping as a real one.

    Attributes:
        executor: Executor that spawns (or records) command lines.
        max_workers: Size of the pool for the concurrent group.
        fail_fast: If True, a failed ``ensure_first`` command skips every
            command after it.
    """

    def __init__(
        self,
        executor: ProcessExecutor,
        max_workers: int = 4,
        fail_fast: bool = False,
        environ: Mapping[str, str] | None = None,
        which: Callable[[str], bool] = command_exists,
    ) -> None:
        self.executor = executor
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self._environ = environ
        self._which = which

    def run(
        self,
        commands: Sequence[CommandSpec],
        variables: Mapping[str, str],
        mode: ExecMode = ExecMode.REGULAR,
    ) -> CommandRunReport:
        """Run every command selected by ``mode``.

        Args:
            commands: Declared commands in declaration order.
            variables: Variable table for substitution.
            mode: Which commands to consider.

        Returns:
            CommandRunReport listing the sequential group first, then the
            concurrent group, each in declaration order.
        """
        selected = [c for c in commands if mode.includes(c)]
        sequential = [c for c in selected if c.run_first]
        parallel = [c for c in selected if not c.run_first]

        outcomes: list[CommandOutcome] = []
        aborted = False
        for command in sequential:
            if aborted:
                outcomes.append(self._skipped_after_failure(command))
                continue
            outcome = self._execute(command, variables)
            outcomes.append(outcome)
            if outcome.failed and self.fail_fast:
                logger.warning("Command '%s' failed; skipping the remaining commands", command.name)
                aborted = True

        if aborted:
            outcomes.extend(self._skipped_after_failure(c) for c in parallel)
        else:
            outcomes.extend(self._run_concurrently(parallel, variables))

        return CommandRunReport(outcomes=tuple(outcomes), dry_run=self.executor.is_dry_run)

    def run_one(self, command: CommandSpec, variables: Mapping[str, str]) -> CommandRunReport:
        """Run a single command regardless of its flags."""
        outcome = self._execute(command, variables)
        return CommandRunReport(outcomes=(outcome,), dry_run=self.executor.is_dry_run)

    def _run_concurrently(
        self, commands: list[CommandSpec], variables: Mapping[str, str]
    ) -> list[CommandOutcome]:
        """Dispatch commands on a thread pool and join all of them."""
        if not commands:
            return []

        results: dict[str, CommandOutcome] = {}
        workers = max(1, min(self.max_workers, len(commands)))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            future_map = {pool.submit(self._execute, c, variables): c for c in commands}
            for future in concurrent.futures.as_completed(future_map):
                command = future_map[future]
                try:
                    results[command.name] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Unhandled exception while running command %s", command.name)
                    results[command.name] = CommandOutcome(
                        name=command.name,
                        status=OutcomeStatus.FAILED,
                        elevated=command.elevated,
                        error=str(exc),
                    )

        return [results[c.name] for c in commands]

    def _execute(self, command: CommandSpec, variables: Mapping[str, str]) -> CommandOutcome:
        """Check, substitute and run one command."""
        missing = [binary for binary in command.required if not self._which(binary)]
        if missing:
            logger.info("Skipping '%s': missing %s", command.name, ", ".join(missing))
            return CommandOutcome(
                name=command.name,
                status=OutcomeStatus.SKIPPED,
                elevated=command.elevated,
                error=f"required binaries not found: {', '.join(missing)}",
            )

        try:
            line = substitute(command.template, variables, self._environ, command.name)
        except VariableResolutionError as e:
            logger.warning("%s", e)
            return CommandOutcome(
                name=command.name,
                status=OutcomeStatus.FAILED,
                elevated=command.elevated,
                error=str(e),
            )

        try:
            result = self.executor.run(line, elevated=command.elevated)
        except OSError as e:
            return CommandOutcome(
                name=command.name,
                status=OutcomeStatus.FAILED,
                command_line=line,
                elevated=command.elevated,
                error=f"could not start shell: {e}",
            )

        if not result.success:
            return CommandOutcome(
                name=command.name,
                status=OutcomeStatus.FAILED,
                command_line=line,
                elevated=command.elevated,
                returncode=result.returncode,
                error=f"exited with status {result.returncode}",
            )
        return CommandOutcome(
            name=command.name,
            status=OutcomeStatus.SUCCEEDED,
            command_line=line,
            elevated=command.elevated,
            returncode=result.returncode,
        )

    @staticmethod
    def _skipped_after_failure(command: CommandSpec) -> CommandOutcome:
        return CommandOutcome(
            name=command.name,
            status=OutcomeStatus.SKIPPED,
            elevated=command.elevated,
            error="skipped after an earlier command failed",
        )
