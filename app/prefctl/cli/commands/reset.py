"""Reset command implementation.

Deletes every declared key so the system default applies again. The
reset is snapshotted like an apply, so 'prefctl unapply' reverts it.
"""

from typing import Annotated

import typer

from prefctl.cli.display import create_preference_table, print_run_summary
from prefctl.cli.types import build_reconciler, confirm, require_config
from prefctl.core.errors import PrefctlError
from prefctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Reset declared keys to system defaults.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def reset(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Required: confirm that declared keys should be deleted.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show which keys would be deleted.",
        ),
    ] = False,
) -> None:
    """Delete every declared key that currently has a value.

    Examples:
        prefctl reset --force --dry-run
        prefctl reset --force
    """
    if ctx.invoked_subcommand is not None:
        return

    target = require_config(ctx)
    reconciler = build_reconciler(ctx, target)

    if force and not dry_run and not target.locked:
        if not confirm(ctx, f"Delete up to {len(target.preferences)} declared key(s)?"):
            print_info("Aborted.")
            raise typer.Exit(code=0)

    try:
        report = reconciler.reset(force=force, dry_run=dry_run)
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not report.preference_results:
        print_success("No declared key is set. Nothing to do.")
        return

    table = create_preference_table(report.preference_results, dry_run=dry_run, title="Reset")
    console.print(table)
    print_run_summary(report)
    if not report.ok:
        raise typer.Exit(code=1)
