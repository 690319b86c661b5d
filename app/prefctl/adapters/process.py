"""Process executors for auxiliary commands.

Command lines come from the user's configuration after variable
substitution and are handed to ``sh -c`` unchanged.
"""

import logging
import threading

from prefctl.adapters.base import ExecResult, ProcessExecutor
from prefctl.utils.shell import run_command

logger = logging.getLogger(__name__)


def shell_args(command: str, elevated: bool = False) -> list[str]:
    """Build the argument vector for running a command line.

    Examples:
        ``shell_args("echo hi")`` -> ``["sh", "-c", "echo hi"]``
        ``shell_args("pmset -a x 1", elevated=True)``
        -> ``["sudo", "sh", "-c", "pmset -a x 1"]``
    """
    args = ["sh", "-c", command]
    if elevated:
        args.insert(0, "sudo")
    return args


class ShellExecutor(ProcessExecutor):
    """Run command lines through ``sh -c``.

    Elevated commands are prefixed with ``sudo``; sudo prompts on the
    controlling terminal, so captured output does not hide the prompt.

    Attributes:
        timeout: Seconds to wait per command, or None to wait forever.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def run(self, command: str, elevated: bool = False) -> ExecResult:
        """Run a command line and capture its combined output."""
        logger.info("Running%s: %s", " (sudo)" if elevated else "", command)
        result = run_command(shell_args(command, elevated), timeout=self.timeout)

        output = result.output
        if not result.success:
            logger.warning("Command exited with %d: %s", result.returncode, command)
        logger.debug("Output of %s:\n%s", command, output)
        return ExecResult(returncode=result.returncode, output=output)


class DryRunExecutor(ProcessExecutor):
    """Executor that records command lines and never spawns anything.

    Every call reports success so a dry run produces the same bookkeeping
    as a real one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.commands: list[tuple[str, bool]] = []

    @property
    def is_dry_run(self) -> bool:
        return True

    def run(self, command: str, elevated: bool = False) -> ExecResult:
        """Record the command line."""
        with self._lock:
            self.commands.append((command, elevated))
        logger.info("Would run%s: %s", " (sudo)" if elevated else "", command)
        return ExecResult(returncode=0)
