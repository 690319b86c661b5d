"""CLI package for prefctl.

This package contains the Typer application and all subcommands.
"""

from prefctl.cli.main import app

__all__ = ["app"]
