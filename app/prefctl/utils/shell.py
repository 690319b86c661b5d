"""Subprocess helpers shared by the macOS adapters.

Every external tool prefctl drives (``defaults``, ``brew``, ``killall``,
``sh``) goes through :func:`run_command`, so tests patch one place.
"""

import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one process.

    Attributes:
        stdout: Standard output, decoded as text.
        stderr: Standard error, decoded as text.
        returncode: Exit status.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """True on exit status 0."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr."""
        return f"{self.stdout}{self.stderr}"

    @property
    def error_text(self) -> str:
        """Trimmed stderr, or a placeholder when the tool printed nothing."""
        return self.stderr.strip() or "unknown error"

    def lines(self) -> list[str]:
        """Non-empty, stripped lines of stdout."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
) -> CommandResult:
    """Run a command without a shell and capture its output.

    Args:
        args: Program and arguments.
        check: Raise CalledProcessError on a non-zero exit status.
        timeout: Seconds to wait before giving up, or None to wait forever.

    Raises:
        subprocess.CalledProcessError: If check=True and the command fails.
        subprocess.TimeoutExpired: If the command exceeds timeout.
        FileNotFoundError: If the program is not installed.
    """
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
    )
    return CommandResult(completed.stdout, completed.stderr, completed.returncode)


def command_exists(name: str) -> bool:
    """True if ``name`` resolves to an executable on PATH."""
    return shutil.which(name) is not None
