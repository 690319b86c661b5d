"""Exception hierarchy for prefctl.

Every error raised by the reconciliation engine derives from
:class:`PrefctlError` so the CLI can report it uniformly. The four
families mirror where a failure originates: the configuration, an
adapter talking to the live system, the snapshot file, or an auxiliary
command.
"""

from __future__ import annotations


class PrefctlError(Exception):
    """Base exception for all prefctl errors."""


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(PrefctlError):
    """Raised for malformed configuration or a forbidden mutation."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file is not valid TOML."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content does not match the schema."""


class ConfigLockedError(ConfigError):
    """Raised when a mutating command runs against a locked configuration."""


class ConfigExistsError(ConfigError):
    """Raised when init would overwrite an existing configuration."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Configuration is locked; refusing to {operation}. "
            "Run 'prefctl config unlock' to allow changes."
        )
        self.operation = operation


# =============================================================================
# Adapters
# =============================================================================


class AdapterError(PrefctlError):
    """Raised when the preference or package store rejects an operation.

    Attributes:
        domain: Preference domain involved, if any.
        key: Preference key involved, if any.
        package: Package name involved, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        domain: str | None = None,
        key: str | None = None,
        package: str | None = None,
    ) -> None:
        super().__init__(message)
        self.domain = domain
        self.key = key
        self.package = package


class UnsupportedValueError(AdapterError):
    """Raised when a live value has a type prefctl cannot represent.

    Dictionaries, data and dates are read by ``defaults`` but have no
    PrefValue form.
    """


# =============================================================================
# Snapshot
# =============================================================================


class SnapshotError(PrefctlError):
    """Base exception for snapshot problems."""


class SnapshotNotFoundError(SnapshotError):
    """Raised when there is no snapshot to revert."""


class SnapshotCorruptError(SnapshotError):
    """Raised when the snapshot file cannot be decoded."""


class CaptureOrderError(RuntimeError):
    """Raised when a key is mutated before its prior state was captured.

    This signals a bug in the caller, not a condition to recover from.
    """


# =============================================================================
# Commands
# =============================================================================


class CommandError(PrefctlError):
    """Raised when an auxiliary command cannot be prepared or run."""


class VariableResolutionError(CommandError):
    """Raised when a command template references an undefined variable.

    Attributes:
        command: Name of the command whose template failed.
        missing: Variable names that resolved neither from the variable
            table nor from the environment.
    """

    def __init__(self, command: str, missing: list[str]) -> None:
        names = ", ".join(missing)
        super().__init__(f"Command '{command}' references undefined variable(s): {names}")
        self.command = command
        self.missing = missing


class UnknownCommandError(CommandError):
    """Raised when a command name is not declared in the configuration."""
