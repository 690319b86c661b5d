"""Init command implementation.

Writes a commented starter configuration to review before the first apply.
"""

from typing import Annotated

import typer

from prefctl.cli.types import resolve_config_path
from prefctl.core.config import write_starter_config
from prefctl.core.errors import ConfigError, ConfigExistsError
from prefctl.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    help="Create a starter configuration file.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing configuration file.",
        ),
    ] = False,
) -> None:
    """Create a starter configuration file.

    The file starts out locked; unlock it once the values are reviewed.

    Examples:
        prefctl init
        prefctl --config ./prefctl.toml init --force
    """
    if ctx.invoked_subcommand is not None:
        return

    path = resolve_config_path(ctx)
    try:
        written = write_starter_config(path, overwrite=force)
    except ConfigExistsError as e:
        print_error(str(e))
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config created at {written}")
    print_info("Review it, then run 'prefctl config unlock' and 'prefctl apply'.")
