"""CLI commands for prefctl.

This package contains all subcommand implementations.
"""

from prefctl.cli.commands import apply, config, execute, packages, reset, status, unapply

__all__ = ["apply", "config", "execute", "packages", "reset", "status", "unapply"]
