"""Exec command implementation.

Runs the configured commands without touching preferences. Registered as
a plain command on the main app rather than a sub-app.
"""

from typing import Annotated

import typer

from prefctl.cli.display import create_command_table
from prefctl.cli.types import build_reconciler, require_config, resolve_exec_mode
from prefctl.core.errors import PrefctlError
from prefctl.utils.formatting import console, print_error, print_info, print_success


def exec_commands(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Argument(help="Run only this command, even if it is flagged."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Print the resolved command lines without running them.",
        ),
    ] = False,
    all_commands: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
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
    fail_fast: Annotated[
        bool,
        typer.Option(
            "--fail-fast",
            help="Stop after the first failed 'ensure_first' command.",
        ),
    ] = False,
) -> None:
    """Run commands from the [commands] section.

    Commands with 'ensure_first' run one after another in the order they
    are declared; the rest then run concurrently.

    Examples:
        prefctl exec                  # Regular commands
        prefctl exec --flagged        # Only flagged commands
        prefctl exec restart-audio    # One command by name
    """
    target = require_config(ctx)
    mode = resolve_exec_mode(all_commands, flagged)
    if not target.commands:
        print_info("No commands are configured.")
        return

    reconciler = build_reconciler(ctx, target)
    try:
        report = reconciler.exec_commands(name, mode=mode, dry_run=dry_run, fail_fast=fail_fast)
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not report.outcomes:
        print_info("No command matches the selection.")
        return

    console.print(create_command_table(report))
    if report.ok:
        print_success(f"\n{len(report.succeeded)} succeeded, {len(report.skipped)} skipped.")
    else:
        console.print(
            f"\n[success]{len(report.succeeded)} succeeded[/success], "
            f"[error]{len(report.failed)} failed[/error], "
            f"[muted]{len(report.skipped)} skipped[/muted]"
        )
        raise typer.Exit(code=1)
