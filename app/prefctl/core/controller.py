"""Reconciliation controller.

The Reconciler drives one invocation: it plans with the DiffEngine,
captures prior values through the SnapshotManager, writes through the
preference store, runs auxiliary commands and finally asks the service
notifier to restart whatever owns a changed domain.

Apply walks IDLE -> PLANNING -> MUTATING -> SNAPSHOTTING ->
COMMAND_RUNNING -> DONE. A locked config stops in LOCKED before any
adapter call; an exception that aborts the run ends in FAILED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from prefctl.adapters.process import DryRunExecutor, ShellExecutor
from prefctl.core.commands import CommandOrchestrator, ExecMode
from prefctl.core.config import config_digest
from prefctl.core.diff import DiffEngine
from prefctl.core.errors import (
    AdapterError,
    ConfigError,
    ConfigLockedError,
    SnapshotError,
    UnknownCommandError,
)
from prefctl.models.package import INSTALL_ORDER
from prefctl.models.result import (
    CommandRunReport,
    PackageResult,
    PreferenceOp,
    PreferenceResult,
    ReplayReport,
    RunReport,
)

if TYPE_CHECKING:
    from prefctl.adapters.base import (
        PackageStore,
        PreferenceStore,
        ProcessExecutor,
        ServiceNotifier,
    )
    from prefctl.core.snapshot import SnapshotManager
    from prefctl.models.plan import DriftReport
    from prefctl.models.target import TargetModel
    from prefctl.models.value import PrefValue

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    """Controller state."""

    IDLE = "idle"
    PLANNING = "planning"
    MUTATING = "mutating"
    SNAPSHOTTING = "snapshotting"
    COMMAND_RUNNING = "command_running"
    DONE = "done"
    LOCKED = "locked"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ApplyOptions:
    """Options for one apply.

    Attributes:
        dry_run: Plan and report without mutating anything.
        run_commands: Run auxiliary commands after writing preferences.
        exec_mode: Which commands to consider.
        with_packages: Install missing Homebrew items too.
        check_domains: Reject unknown preference domains before writing.
        restart_services: Restart services owning changed domains.
        fail_fast: Stop commands after the first failed ``ensure_first`` one.
    """

    dry_run: bool = False
    run_commands: bool = True
    exec_mode: ExecMode = ExecMode.REGULAR
    with_packages: bool = False
    check_domains: bool = True
    restart_services: bool = True
    fail_fast: bool = False


class Reconciler:
    """Brings the live system to the target model.

    Example:
        >>> reconciler = Reconciler(load_config(), DefaultsPreferenceStore(), SnapshotManager())
        >>> report = reconciler.apply(ApplyOptions(dry_run=True))
        >>> report.ok
        True
    """

    def __init__(
        self,
        target: TargetModel,
        pref_store: PreferenceStore,
        snapshots: SnapshotManager,
        executor: ProcessExecutor | None = None,
        pkg_store: PackageStore | None = None,
        notifier: ServiceNotifier | None = None,
        max_workers: int = 4,
    ) -> None:
        """Initialize the reconciler.

        Args:
            target: Desired state.
            pref_store: Preference store adapter.
            snapshots: Snapshot handle used for capture and revert.
            executor: Executor for auxiliary commands. Defaults to a
                ShellExecutor when commands run for real.
            pkg_store: Package store adapter, if packages are managed.
            notifier: Service notifier, if services should be restarted.
            max_workers: Pool size for concurrent commands.
        """
        self.target = target
        self.pref_store = pref_store
        self.snapshots = snapshots
        self.executor = executor
        self.pkg_store = pkg_store
        self.notifier = notifier
        self.max_workers = max_workers
        self.engine = DiffEngine(target)
        self.phase = Phase.IDLE

    def _enter(self, report: RunReport | None, phase: Phase) -> None:
        self.phase = phase
        if report is not None:
            report.phases.append(phase.value)
        logger.debug("Phase: %s", phase.value)

    def _require_unlocked(self, operation: str, report: RunReport | None = None) -> None:
        if self.target.locked:
            self._enter(report, Phase.LOCKED)
            raise ConfigLockedError(operation)

    def _orchestrator(self, dry_run: bool, fail_fast: bool) -> CommandOrchestrator:
        if dry_run:
            executor: ProcessExecutor = DryRunExecutor()
        else:
            executor = self.executor if self.executor is not None else ShellExecutor()
        return CommandOrchestrator(executor, max_workers=self.max_workers, fail_fast=fail_fast)

    def _digest(self) -> str | None:
        path = self.target.source_path
        if path is None or not path.exists():
            return None
        return config_digest(path)

    # =========================================================================
    # apply
    # =========================================================================

    def apply(self, options: ApplyOptions | None = None) -> RunReport:
        """Apply the target model.

        Preference writes are best-effort: a failed write is recorded and
        the next planned entry is still attempted.

        Args:
            options: Apply options. Defaults to a full, real apply.

        Returns:
            RunReport for the run.

        Raises:
            ConfigLockedError: If the config is locked.
            AdapterError: If domain checks or planning reads fail.
            SnapshotError: If the snapshot cannot be written.
        """
        opts = options or ApplyOptions()
        report = RunReport(operation="apply", dry_run=opts.dry_run)
        self._enter(report, Phase.IDLE)
        self._require_unlocked("apply", report)

        try:
            self._enter(report, Phase.PLANNING)
            plan = self.engine.plan(self.pref_store, check_domains=opts.check_domains)
            report.skipped_unchanged = len(self.target.preferences) - len(plan.to_set)
            logger.info(
                "Plan: %d write(s), %d key(s) already set",
                len(plan.to_set),
                report.skipped_unchanged,
            )

            if not opts.dry_run:
                self.snapshots.begin_capture(self._digest())

            self._enter(report, Phase.MUTATING)
            for entry in plan.to_set:
                report.preference_results.append(
                    self._write(entry.domain, entry.key, entry.value, opts.dry_run)
                )

            self._enter(report, Phase.SNAPSHOTTING)
            if not opts.dry_run:
                self.snapshots.commit()

            # Package installs are never captured in the snapshot.
            if opts.with_packages:
                report.package_results.extend(self._install_missing(opts.dry_run))

            if opts.run_commands and self.target.commands:
                self._enter(report, Phase.COMMAND_RUNNING)
                orchestrator = self._orchestrator(opts.dry_run, opts.fail_fast)
                report.command_report = orchestrator.run(
                    self.target.commands, self.target.variables, opts.exec_mode
                )
                if not opts.dry_run and report.command_report.executed_names:
                    for name in report.command_report.executed_names:
                        self.snapshots.record_command(name)
                    self.snapshots.commit()
        except (AdapterError, SnapshotError, ConfigError):
            self._enter(report, Phase.FAILED)
            raise

        self._enter(report, Phase.DONE)
        if opts.restart_services and not opts.dry_run:
            report.restarted = self._restart(report.changed_domains)
        return report

    def _write(self, domain: str, key: str, value: PrefValue, dry_run: bool) -> PreferenceResult:
        """Capture then write one key, recording the outcome."""
        if dry_run:
            try:
                prior = self.pref_store.get(domain, key)
            except AdapterError as e:
                return PreferenceResult(domain, key, PreferenceOp.SET, False, value, error=str(e))
            return PreferenceResult(domain, key, PreferenceOp.SET, True, value, prior)

        try:
            prior = self.snapshots.capture_before(self.pref_store, domain, key)
            self.snapshots.require_captured(domain, key)
            self.pref_store.set(domain, key, value)
        except AdapterError as e:
            logger.warning("Failed to write %s | %s: %s", domain, key, e)
            return PreferenceResult(domain, key, PreferenceOp.SET, False, value, error=str(e))
        return PreferenceResult(domain, key, PreferenceOp.SET, True, value, prior)

    def _restart(self, domains: list[str]) -> list[str]:
        if self.notifier is None:
            return []
        restarted: list[str] = []
        for domain in domains:
            service = self.notifier.restart(domain)
            if service is not None:
                restarted.append(service)
        return restarted

    # =========================================================================
    # status / unapply / reset
    # =========================================================================

    def status(self, include_packages: bool = True) -> DriftReport:
        """Report drift between the target and the live system.

        Never mutates and works on a locked config.
        """
        self.phase = Phase.PLANNING
        pkg_store = self.pkg_store if include_packages and self.target.packages else None
        report = self.engine.drift(self.pref_store, pkg_store, self._config_changed())
        self.phase = Phase.IDLE
        return report

    def _config_changed(self) -> bool | None:
        """Compare the config digest with the one in the snapshot."""
        if not self.snapshots.exists():
            return None
        try:
            snapshot = self.snapshots.load()
        except SnapshotError as e:
            logger.warning("Ignoring unreadable snapshot: %s", e)
            return None
        current = self._digest()
        if snapshot.config_digest is None or current is None:
            return None
        return snapshot.config_digest != current

    def unapply(self, dry_run: bool = False) -> ReplayReport:
        """Revert the last apply from its snapshot.

        Commands that ran during the apply are not reverted.

        Raises:
            SnapshotNotFoundError: If there is nothing to revert.
            SnapshotCorruptError: If the snapshot cannot be decoded.
        """
        replay = self.snapshots.apply_and_clear(self.pref_store, dry_run=dry_run)
        if not dry_run and self.notifier is not None:
            changed: dict[str, None] = {}
            for result in replay.succeeded:
                changed.setdefault(result.domain, None)
            self._restart(list(changed))
        self.phase = Phase.DONE
        return replay

    def reset(self, force: bool = False, dry_run: bool = False) -> RunReport:
        """Delete every declared key so system defaults apply.

        The reset is captured in a snapshot, so ``unapply`` reverts it.

        Raises:
            ConfigLockedError: If the config is locked.
            ConfigError: If ``force`` is not set.
        """
        report = RunReport(operation="reset", dry_run=dry_run)
        self._enter(report, Phase.IDLE)
        self._require_unlocked("reset", report)
        if not force:
            msg = "Reset deletes every declared key; pass --force to confirm."
            raise ConfigError(msg)

        try:
            self._enter(report, Phase.PLANNING)
            plan = self.engine.reset_plan(self.pref_store)
            report.skipped_unchanged = len(self.target.preferences) - len(plan.to_unset)

            if not dry_run:
                self.snapshots.begin_capture(self._digest())

            self._enter(report, Phase.MUTATING)
            for domain, key in plan.to_unset:
                report.preference_results.append(self._delete(domain, key, dry_run))

            self._enter(report, Phase.SNAPSHOTTING)
            if not dry_run:
                self.snapshots.commit()
        except (AdapterError, SnapshotError):
            self._enter(report, Phase.FAILED)
            raise

        self._enter(report, Phase.DONE)
        if not dry_run:
            report.restarted = self._restart(report.changed_domains)
        return report

    def _delete(self, domain: str, key: str, dry_run: bool) -> PreferenceResult:
        if dry_run:
            return PreferenceResult(domain, key, PreferenceOp.UNSET, True)
        try:
            prior = self.snapshots.capture_before(self.pref_store, domain, key)
            self.snapshots.require_captured(domain, key)
            self.pref_store.unset(domain, key)
        except AdapterError as e:
            logger.warning("Failed to delete %s | %s: %s", domain, key, e)
            return PreferenceResult(domain, key, PreferenceOp.UNSET, False, error=str(e))
        return PreferenceResult(domain, key, PreferenceOp.UNSET, True, prior=prior)

    # =========================================================================
    # packages / commands
    # =========================================================================

    def install_packages(self, dry_run: bool = False) -> list[PackageResult]:
        """Install missing taps, then formulae, then casks.

        Raises:
            ConfigLockedError: If the config is locked.
            AdapterError: If installed packages cannot be listed.
        """
        self._require_unlocked("install packages")
        return self._install_missing(dry_run)

    def _install_missing(self, dry_run: bool) -> list[PackageResult]:
        if self.target.packages is None or self.pkg_store is None:
            return []

        delta = self.engine.package_delta(self.pkg_store)
        results: list[PackageResult] = []
        for kind in INSTALL_ORDER:
            for name in delta.missing_of(kind):
                if dry_run:
                    results.append(PackageResult(name, kind, True, message="would install"))
                    continue
                try:
                    self.pkg_store.install(name, kind)
                except AdapterError as e:
                    logger.warning("Failed to install %s %s: %s", kind.value, name, e)
                    results.append(PackageResult(name, kind, False, error=str(e)))
                    continue
                results.append(PackageResult(name, kind, True, message="installed"))
        return results

    def exec_commands(
        self,
        name: str | None = None,
        mode: ExecMode = ExecMode.REGULAR,
        dry_run: bool = False,
        fail_fast: bool = False,
    ) -> CommandRunReport:
        """Run auxiliary commands outside of an apply.

        Args:
            name: Run only this command, regardless of its flags.
            mode: Which commands to consider when no name is given.
            dry_run: Resolve and report without spawning.
            fail_fast: Stop after the first failed ``ensure_first`` command.

        Raises:
            ConfigLockedError: If the config is locked.
            UnknownCommandError: If ``name`` is not declared.
        """
        self._require_unlocked("run commands")
        orchestrator = self._orchestrator(dry_run, fail_fast)
        if name is not None:
            command = self.target.get_command(name)
            if command is None:
                raise UnknownCommandError(f"No command named '{name}' in the configuration")
            return orchestrator.run_one(command, self.target.variables)
        return orchestrator.run(self.target.commands, self.target.variables, mode)
