"""Config command implementation.

Shows, deletes, locks and unlocks the configuration file.
"""

import typer
from rich.syntax import Syntax

from prefctl.cli.types import confirm, resolve_config_path
from prefctl.core.config import delete_config, set_lock
from prefctl.core.errors import ConfigError
from prefctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage the configuration file.",
    no_args_is_help=True,
)


@app.command("show")
def show(ctx: typer.Context) -> None:
    """Print the configuration file."""
    path = resolve_config_path(ctx)
    if not path.exists():
        print_error(f"Config not found: {path}")
        raise typer.Exit(code=1)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        print_error(f"Failed to read config: {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[muted]# {path}[/muted]")
    console.print(Syntax(text, "toml", theme="ansi_dark", background_color="default"))


@app.command("delete")
def delete(ctx: typer.Context) -> None:
    """Delete the configuration file."""
    path = resolve_config_path(ctx)
    if not path.exists():
        print_error(f"Config not found: {path}")
        raise typer.Exit(code=1)

    if not confirm(ctx, f"Delete {path}?"):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    try:
        delete_config(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Deleted {path}")


def _set_lock(ctx: typer.Context, locked: bool) -> None:
    path = resolve_config_path(ctx)
    try:
        set_lock(locked, path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config {'locked' if locked else 'unlocked'}: {path}")


@app.command("lock")
def lock(ctx: typer.Context) -> None:
    """Lock the configuration so apply, reset and exec refuse to run."""
    _set_lock(ctx, True)


@app.command("unlock")
def unlock(ctx: typer.Context) -> None:
    """Unlock the configuration."""
    _set_lock(ctx, False)
