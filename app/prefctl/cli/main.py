"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from prefctl import __version__
from prefctl.cli.commands import (
    apply,
    config,
    execute,
    init,
    packages,
    reset,
    status,
    unapply,
)
from prefctl.cli.types import GlobalOptions
from prefctl.utils.formatting import setup_logging

# Create main Typer app
app = typer.Typer(
    name="prefctl",
    help="Declarative macOS preferences, Homebrew packages and setup commands.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"prefctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Use this config file instead of the default lookup.",
            dir_okay=False,
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Answer yes to every confirmation prompt.",
        ),
    ] = False,
    no_restart: Annotated[
        bool,
        typer.Option(
            "--no-restart",
            help="Do not restart Dock, Finder or SystemUIServer after changes.",
        ),
    ] = False,
) -> None:
    """prefctl - Declarative configuration for macOS.

    Declare preferences, Homebrew packages and setup commands in one TOML
    file and apply them; every apply can be reverted with 'unapply'.
    """
    setup_logging(verbose=verbose, quiet=quiet)
    # Store options in context for subcommands
    ctx.obj = GlobalOptions(
        verbose=verbose,
        quiet=quiet,
        config_path=config_path,
        yes=yes,
        no_restart=no_restart,
    )


# Register commands
app.add_typer(init.app, name="init")
app.add_typer(apply.app, name="apply")
app.add_typer(status.app, name="status")
app.add_typer(unapply.app, name="unapply")
app.add_typer(reset.app, name="reset")
app.command("exec")(execute.exec_commands)
app.add_typer(config.app, name="config")
app.add_typer(packages.app, name="packages")


if __name__ == "__main__":
    app()
