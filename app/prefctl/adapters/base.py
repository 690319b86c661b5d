"""Abstract interfaces to the live system.

The reconciliation engine never touches the machine directly. It reads
and writes preferences, lists and installs packages, runs shell commands
and restarts services only through the interfaces defined here, so every
piece of orchestration logic can be tested against in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from prefctl.models.package import PackageKind
from prefctl.models.value import PrefValue


class PreferenceStore(ABC):
    """Read and write single preference values.

    Example:
        >>> store = DefaultsPreferenceStore()
        >>> store.get("com.apple.dock", "tilesize")
        PrefValue(kind=<ValueKind.INTEGER: 'int'>, data=50)
    """

    @abstractmethod
    def get(self, domain: str, key: str) -> PrefValue | None:
        """Read a value.

        Returns:
            The live value, or None if the key is not set.

        Raises:
            AdapterError: If the store cannot be read or holds a value
                that cannot be represented.
        """

    @abstractmethod
    def set(self, domain: str, key: str, value: PrefValue) -> None:
        """Write a value.

        Raises:
            AdapterError: If the write is rejected.
        """

    @abstractmethod
    def unset(self, domain: str, key: str) -> None:
        """Delete a key so the system default applies.

        Deleting a key that is not set is not an error.

        Raises:
            AdapterError: If the delete is rejected.
        """

    @abstractmethod
    def domain_exists(self, domain: str) -> bool:
        """Check whether a domain is known to the store."""

    @abstractmethod
    def keys(self, domain: str) -> list[str]:
        """List the keys currently set in a domain.

        Returns:
            Key names; empty if the domain does not exist.

        Raises:
            AdapterError: If the store cannot be read.
        """

    def is_available(self) -> bool:
        """Check if the store can be used on this system."""
        return True


class PackageStore(ABC):
    """List and install Homebrew items."""

    @abstractmethod
    def list_installed(self, kind: PackageKind, explicit_only: bool = False) -> set[str]:
        """List installed items of one kind.

        Args:
            kind: Which kind of item to list.
            explicit_only: Exclude items installed only as dependencies.

        Raises:
            AdapterError: If the package manager cannot be queried.
        """

    @abstractmethod
    def install(self, name: str, kind: PackageKind) -> None:
        """Install (or tap) a single item.

        Raises:
            AdapterError: If the install fails.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the package manager is available on the system."""


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Exit status of a shell command.

    Attributes:
        returncode: Process exit code.
        output: Captured output, if the executor captures it.
    """

    returncode: int
    output: str = ""

    @property
    def success(self) -> bool:
        """Check if the command exited with status zero."""
        return self.returncode == 0


class ProcessExecutor(ABC):
    """Run shell command lines."""

    @property
    def is_dry_run(self) -> bool:
        """True if the executor never spawns processes."""
        return False

    @abstractmethod
    def run(self, command: str, elevated: bool = False) -> ExecResult:
        """Run a command line through a shell.

        Args:
            command: Fully substituted command line.
            elevated: Route through the privileged execution path.

        Returns:
            The exit status.

        Raises:
            OSError: If the shell cannot be spawned.
        """


class ServiceNotifier(ABC):
    """Tell system services to pick up changed preferences."""

    @abstractmethod
    def restart(self, domain: str) -> str | None:
        """Restart the service that owns a domain.

        Returns:
            The name of the service signalled, or None if nothing was
            restarted (no owning service, or already restarted).
        """
