"""Shared Rich display functions for plans, drift and results.

Provides reusable table builders and summary printers used by the
apply, status, unapply, reset, exec and packages commands.
"""

from rich.markup import escape
from rich.table import Table

from prefctl.adapters.appstore import AppStoreApp
from prefctl.models.package import INSTALL_ORDER
from prefctl.models.plan import DriftReport, PackageDelta
from prefctl.models.result import (
    CommandRunReport,
    OutcomeStatus,
    PackageResult,
    PreferenceOp,
    PreferenceResult,
    ReplayReport,
    RunReport,
)
from prefctl.utils.formatting import console, format_key, format_value, print_success

_OP_STYLE: dict[PreferenceOp, str] = {
    PreferenceOp.SET: "[changed]set[/changed]",
    PreferenceOp.UNSET: "[removed]unset[/removed]",
    PreferenceOp.RESTORE: "[changed]restore[/changed]",
    PreferenceOp.REMOVE: "[removed]remove[/removed]",
}


def _new_table(title: str) -> Table:
    return Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )


def _status_cell(success: bool, dry_run: bool = False) -> str:
    if not success:
        return "[error]FAIL[/error]"
    if dry_run:
        return "[info]PLAN[/info]"
    return "[success]OK[/success]"


def create_preference_table(
    results: list[PreferenceResult] | tuple[PreferenceResult, ...],
    dry_run: bool = False,
    title: str = "Preferences",
) -> Table:
    """Create a table of preference writes.

    The Change column shows ``prior -> value`` for writes and the prior
    value that is being restored for replays.

    Args:
        results: Write results to display.
        dry_run: Mark rows as planned rather than done.
        title: Table title.

    Returns:
        Rich Table configured for preference results.
    """
    table = _new_table(f"{title} (Dry Run)" if dry_run else title)
    table.add_column("Status", width=6, justify="center")
    table.add_column("Op", width=8)
    table.add_column("Domain | Key", no_wrap=True)
    table.add_column("Change")

    for result in results:
        if result.op == PreferenceOp.SET:
            change = f"{format_value(result.prior)} [muted]->[/muted] {format_value(result.value)}"
        elif result.op == PreferenceOp.RESTORE:
            change = format_value(result.value)
        else:
            change = "[muted](delete)[/muted]"
        if result.failed:
            change = f"{change}\n[error]{escape(result.error or 'Unknown error')}[/error]"

        table.add_row(
            _status_cell(result.success, dry_run),
            _OP_STYLE[result.op],
            format_key(result.domain, result.key),
            change,
        )
    return table


def create_drift_table(report: DriftReport) -> Table:
    """Create a table comparing declared and live values."""
    table = _new_table("Preferences")
    table.add_column("", width=2, justify="center")
    table.add_column("Domain | Key", no_wrap=True)
    table.add_column("Declared")
    table.add_column("Live")

    for drift in report.preferences:
        icon = "[success]✓[/success]" if drift.matches else "[changed]✗[/changed]"
        live = format_value(drift.live)
        if drift.unreadable:
            live = "[warning](unsupported type)[/warning]"
        table.add_row(icon, format_key(drift.domain, drift.key), format_value(drift.declared), live)
    return table


def create_package_delta_table(delta: PackageDelta) -> Table:
    """Create a table of missing and extra Homebrew items."""
    table = _new_table("Homebrew")
    table.add_column("Kind", width=8)
    table.add_column("Missing")
    table.add_column("Not declared")

    for kind in INSTALL_ORDER:
        missing = ", ".join(delta.missing_of(kind)) or "-"
        extra = ", ".join(delta.extra_of(kind)) or "-"
        table.add_row(kind.plural, f"[added]{missing}[/added]", f"[muted]{extra}[/muted]")
    return table


def create_package_results_table(results: list[PackageResult], dry_run: bool = False) -> Table:
    """Create a table of Homebrew install results."""
    table = _new_table("Homebrew (Dry Run)" if dry_run else "Homebrew")
    table.add_column("Status", width=6, justify="center")
    table.add_column("Kind", width=8)
    table.add_column("Name", no_wrap=True)
    table.add_column("Message")

    for result in results:
        if result.success:
            message = result.message or ""
        else:
            message = result.error or "Unknown error"
        table.add_row(
            _status_cell(result.success, dry_run),
            result.kind.value,
            result.name,
            f"[muted]{escape(message)}[/muted]",
        )
    return table


def create_app_store_table(apps: list[AppStoreApp]) -> Table:
    """Create a table of installed App Store apps."""
    table = _new_table("App Store")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Version", style="muted")

    for app in apps:
        table.add_row(app.app_id, escape(app.name), app.version or "-")
    return table


def create_command_table(report: CommandRunReport) -> Table:
    """Create a table of command outcomes.

    Rows follow the report order: sequential commands first, then the
    concurrent group.
    """
    table = _new_table("Commands (Dry Run)" if report.dry_run else "Commands")
    table.add_column("Status", width=6, justify="center")
    table.add_column("Name", no_wrap=True)
    table.add_column("Command")

    for outcome in report.outcomes:
        if outcome.status == OutcomeStatus.SKIPPED:
            status = "[warning]SKIP[/warning]"
        else:
            status = _status_cell(outcome.succeeded, report.dry_run)
        line = escape(outcome.command_line or "")
        if outcome.elevated:
            line = f"[warning]sudo[/warning] {line}"
        if outcome.error:
            note = f"[muted]{escape(outcome.error)}[/muted]"
            line = f"{line}\n{note}" if line else note
        table.add_row(status, outcome.name, line)
    return table


def print_run_summary(report: RunReport) -> None:
    """Print counts for an apply or reset."""
    if report.dry_run:
        console.print(
            f"\nDry run: [changed]{len(report.preference_results)} change(s)[/changed] planned, "
            f"[muted]{report.skipped_unchanged} already set[/muted]"
        )
        return

    if report.failed == 0:
        print_success(
            f"\n{report.operation.capitalize()} complete: {report.succeeded} succeeded, "
            f"{report.skipped} skipped."
        )
    else:
        console.print(
            f"\n[success]{report.succeeded} succeeded[/success], "
            f"[error]{report.failed} failed[/error], "
            f"[muted]{report.skipped} skipped[/muted]"
        )
    if report.restarted:
        console.print(f"[muted]Restarted: {', '.join(report.restarted)}[/muted]")


def print_replay_summary(report: ReplayReport) -> None:
    """Print counts for an unapply."""
    if report.dry_run:
        console.print(f"\nDry run: {len(report.results)} key(s) would be reverted.")
        return
    if report.ok:
        print_success(f"\nReverted {len(report.succeeded)} key(s). Snapshot removed.")
    else:
        console.print(
            f"\n[success]{len(report.succeeded)} reverted[/success], "
            f"[error]{len(report.failed)} failed[/error]. "
            "The failed keys were kept; run 'prefctl unapply' again to retry."
        )
    if report.commands_not_reverted:
        names = ", ".join(report.commands_not_reverted)
        console.print(f"[warning]Commands are not reverted:[/warning] {names}")
