"""Unapply command implementation.

Reverts the last apply (or reset) from the snapshot it left behind.
"""

from typing import Annotated

import typer

from prefctl.cli.display import create_preference_table, print_replay_summary
from prefctl.cli.types import build_reconciler
from prefctl.core.errors import PrefctlError, SnapshotNotFoundError
from prefctl.models.target import TargetModel
from prefctl.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="Revert the last apply.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def unapply(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be reverted without executing.",
        ),
    ] = False,
) -> None:
    """Restore every key the last apply touched to its prior value.

    Keys that did not exist before are deleted. Commands are not reverted.
    The config file is not read; the snapshot alone decides what is undone.
    If some keys fail, the snapshot keeps only those so running unapply
    again retries them.

    Examples:
        prefctl unapply --dry-run
        prefctl unapply
    """
    if ctx.invoked_subcommand is not None:
        return

    reconciler = build_reconciler(ctx, TargetModel())

    try:
        report = reconciler.unapply(dry_run=dry_run)
    except SnapshotNotFoundError as e:
        print_info("Nothing to revert.")
        raise typer.Exit(code=1) from e
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if report.results:
        console.print(create_preference_table(report.results, dry_run=dry_run, title="Revert"))
    print_replay_summary(report)

    if not report.ok:
        raise typer.Exit(code=1)
