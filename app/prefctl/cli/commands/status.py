"""Status command implementation.

Compares the configuration with the live system without changing
anything. Works on a locked configuration.
"""

import json
from typing import Annotated

import typer
from rich.markup import escape

from prefctl.cli.display import create_drift_table, create_package_delta_table
from prefctl.cli.types import build_reconciler, require_config
from prefctl.core.errors import PrefctlError
from prefctl.models.plan import DriftReport
from prefctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show drift between the configuration and this Mac.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def status(
    ctx: typer.Context,
    no_packages: Annotated[
        bool,
        typer.Option(
            "--no-packages",
            help="Skip the Homebrew comparison.",
        ),
    ] = False,
    output_json: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the report as JSON.",
        ),
    ] = False,
) -> None:
    """Show which declared keys differ from their live values.

    Keys present in a declared domain but not in the configuration are
    listed for information; they are never removed.

    Examples:
        prefctl status
        prefctl status --no-packages
        prefctl status --json
    """
    if ctx.invoked_subcommand is not None:
        return

    target = require_config(ctx)
    include_packages = not no_packages
    reconciler = build_reconciler(ctx, target, with_packages=include_packages)

    try:
        report = reconciler.status(include_packages=include_packages)
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_json:
        console.print_json(json.dumps(report.to_dict()))
        return

    _print_report(report)


def _print_report(report: DriftReport) -> None:
    """Render a drift report."""
    if report.config_changed:
        print_info("The configuration changed since the last apply.")

    if report.preferences:
        console.print(create_drift_table(report))

    if report.extra_keys:
        console.print("\n[bold]Keys not in the configuration:[/bold]")
        for domain, keys in report.extra_keys.items():
            names = escape(", ".join(keys))
            console.print(f"  [domain]{escape(domain)}[/domain]: [muted]{names}[/muted]")

    if report.package_delta is not None and not report.package_delta.is_in_sync:
        console.print(create_package_delta_table(report.package_delta))

    if report.is_in_sync:
        print_success("\nThis Mac matches the configuration.")
    elif report.drifted:
        count = len(report.drifted)
        console.print(f"\n[changed]{count} key(s) differ[/changed] from the configuration.")
    else:
        console.print("\n[changed]Homebrew packages differ[/changed] from the configuration.")
