"""Apply command implementation.

Writes every declared preference whose live value differs, records the
prior values in a snapshot, then runs the auxiliary commands.
"""

from typing import Annotated

import typer

from prefctl.cli.display import (
    create_command_table,
    create_package_results_table,
    create_preference_table,
    print_run_summary,
)
from prefctl.cli.types import build_reconciler, require_config, resolve_exec_mode
from prefctl.core.controller import ApplyOptions
from prefctl.core.errors import PrefctlError
from prefctl.utils.formatting import console, print_error, print_success

app = typer.Typer(
    help="Apply the configuration to this Mac.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def apply_config(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
    no_exec: Annotated[
        bool,
        typer.Option(
            "--no-exec",
            help="Do not run the configured commands.",
        ),
    ] = False,
    all_exec: Annotated[
        bool,
        typer.Option(
            "--all-exec",
            help="Also run commands marked with 'flag'.",
        ),
    ] = False,
    flagged: Annotated[
        bool,
        typer.Option(
            "--flagged",
            help="Run only commands marked with 'flag'.",
        ),
    ] = False,
    with_packages: Annotated[
        bool,
        typer.Option(
            "--with-packages",
            "-p",
            help="Also install missing Homebrew taps, formulae and casks.",
        ),
    ] = False,
    disable_checks: Annotated[
        bool,
        typer.Option(
            "--disable-checks",
            help="Write to preference domains that do not exist yet.",
        ),
    ] = False,
    fail_fast: Annotated[
        bool,
        typer.Option(
            "--fail-fast",
            help="Stop running commands after the first failed 'ensure_first' command.",
        ),
    ] = False,
) -> None:
    """Apply the configuration.

    Only keys whose live value differs from the declared value are
    written, so applying twice in a row changes nothing the second time.
    Run 'prefctl unapply' to revert the last apply.

    Examples:
        prefctl apply --dry-run          # Preview changes
        prefctl apply --no-exec          # Preferences only
        prefctl apply --with-packages    # Also install Homebrew items
    """
    if ctx.invoked_subcommand is not None:
        return

    target = require_config(ctx)
    mode = resolve_exec_mode(all_exec, flagged)
    reconciler = build_reconciler(ctx, target, with_packages=with_packages)
    options = ApplyOptions(
        dry_run=dry_run,
        run_commands=not no_exec,
        exec_mode=mode,
        with_packages=with_packages,
        check_domains=not disable_checks,
        fail_fast=fail_fast,
    )

    try:
        report = reconciler.apply(options)
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if report.preference_results:
        console.print(create_preference_table(report.preference_results, dry_run=dry_run))
    elif not report.package_results and report.command_report is None:
        print_success("All preferences are already set. Nothing to do.")
        return

    if report.package_results:
        console.print(create_package_results_table(report.package_results, dry_run=dry_run))
    if report.command_report is not None and report.command_report.outcomes:
        console.print(create_command_table(report.command_report))

    print_run_summary(report)
    if not report.ok:
        raise typer.Exit(code=1)
