"""Result models for executed operations.

This module defines the per-item outcomes of preference writes, package
installs and auxiliary commands, and the reports that aggregate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from prefctl.models.package import PackageKind
from prefctl.models.value import PrefValue


class OutcomeStatus(str, Enum):
    """Outcome of a single operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class PreferenceOp(str, Enum):
    """Kind of preference write.

    Attributes:
        SET: Write the declared value.
        UNSET: Delete the key (reset to the system default).
        RESTORE: Write back a prior value from the snapshot.
        REMOVE: Delete a key that did not exist before the apply.
    """

    SET = "set"
    UNSET = "unset"
    RESTORE = "restore"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class PreferenceResult:
    """Result of one preference write.

    Attributes:
        domain: Preference domain.
        key: Preference key.
        op: Kind of write performed.
        success: Whether the write completed.
        value: Value written, if any.
        prior: Value before the write, if it was captured.
        error: Error message if the write failed.
    """

    domain: str
    key: str
    op: PreferenceOp
    success: bool
    value: PrefValue | None = None
    prior: PrefValue | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the write failed."""
        return not self.success


@dataclass(frozen=True, slots=True)
class PackageResult:
    """Result of installing one Homebrew item.

    Attributes:
        name: Package, cask or tap name.
        kind: Kind of item.
        success: Whether the install completed.
        message: Optional success message.
        error: Error message if the install failed.
    """

    name: str
    kind: PackageKind
    success: bool
    message: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the install failed."""
        return not self.success


@dataclass(frozen=True, slots=True)
class CommandOutcome:
    """Outcome of one auxiliary command.

    Attributes:
        name: Command name from the configuration.
        status: Succeeded, failed, or skipped.
        command_line: Fully substituted command line, if substitution succeeded.
        elevated: Whether the command went through the privileged path.
        returncode: Exit status, if the command ran.
        error: Reason for a failure or skip.
    """

    name: str
    status: OutcomeStatus
    command_line: str | None = None
    elevated: bool = False
    returncode: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == OutcomeStatus.SKIPPED


@dataclass(frozen=True, slots=True)
class CommandRunReport:
    """Aggregated outcomes of a command run.

    Outcomes are listed sequential commands first (in declaration order),
    then the concurrent batch (in declaration order, regardless of the
    order in which they finished).

    Attributes:
        outcomes: One outcome per considered command.
        dry_run: True if no command was actually spawned.
    """

    outcomes: tuple[CommandOutcome, ...] = ()
    dry_run: bool = False

    @property
    def succeeded(self) -> list[CommandOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[CommandOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def skipped(self) -> list[CommandOutcome]:
        return [o for o in self.outcomes if o.skipped]

    @property
    def executed_names(self) -> list[str]:
        """Names of commands that were actually started."""
        return [o.name for o in self.outcomes if o.returncode is not None]

    @property
    def ok(self) -> bool:
        """True if no command failed."""
        return not self.failed


@dataclass(frozen=True, slots=True)
class ReplayReport:
    """Result of reverting a snapshot.

    Attributes:
        results: One result per snapshot entry, in replay (reverse) order.
        snapshot_deleted: Whether the snapshot file was removed.
        commands_not_reverted: Commands recorded in the snapshot; these are
            never reverted automatically.
        dry_run: True if nothing was written.
    """

    results: tuple[PreferenceResult, ...] = ()
    snapshot_deleted: bool = False
    commands_not_reverted: tuple[str, ...] = ()
    dry_run: bool = False

    @property
    def succeeded(self) -> list[PreferenceResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[PreferenceResult]:
        return [r for r in self.results if r.failed]

    @property
    def ok(self) -> bool:
        """True if every entry was replayed."""
        return not self.failed


@dataclass(slots=True)
class RunReport:
    """Aggregate result of one apply or reset.

    Attributes:
        operation: "apply" or "reset".
        dry_run: True if nothing was mutated.
        phases: Controller phases visited, in order.
        preference_results: Preference writes issued.
        package_results: Package installs issued.
        command_report: Auxiliary command outcomes, if commands ran.
        restarted: Services signalled to restart.
        skipped_unchanged: Number of declared keys already at their target.
    """

    operation: str
    dry_run: bool = False
    phases: list[str] = field(default_factory=list)
    preference_results: list[PreferenceResult] = field(default_factory=list)
    package_results: list[PackageResult] = field(default_factory=list)
    command_report: CommandRunReport | None = None
    restarted: list[str] = field(default_factory=list)
    skipped_unchanged: int = 0

    @property
    def succeeded(self) -> int:
        """Number of successful writes, installs and commands."""
        count = sum(1 for r in self.preference_results if r.success)
        count += sum(1 for r in self.package_results if r.success)
        if self.command_report is not None:
            count += len(self.command_report.succeeded)
        return count

    @property
    def failed(self) -> int:
        """Number of failed writes, installs and commands."""
        count = sum(1 for r in self.preference_results if r.failed)
        count += sum(1 for r in self.package_results if r.failed)
        if self.command_report is not None:
            count += len(self.command_report.failed)
        return count

    @property
    def skipped(self) -> int:
        """Number of unchanged keys plus skipped commands."""
        count = self.skipped_unchanged
        if self.command_report is not None:
            count += len(self.command_report.skipped)
        return count

    @property
    def ok(self) -> bool:
        """True if nothing failed."""
        return self.failed == 0

    @property
    def changed_domains(self) -> list[str]:
        """Domains with at least one successful write, first-write order."""
        ordered: dict[str, None] = {}
        for result in self.preference_results:
            if result.success:
                ordered.setdefault(result.domain, None)
        return list(ordered)
