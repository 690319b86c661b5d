"""Shared types and helpers for CLI commands.

This module holds the global option bag stored on the Typer context and
the helpers every command uses to load the configuration and build the
real adapters, so the command modules do not repeat them.
"""

from dataclasses import dataclass
from pathlib import Path

import typer

from prefctl.adapters.base import PackageStore
from prefctl.adapters.defaults import DefaultsPreferenceStore
from prefctl.adapters.homebrew import BrewPackageStore
from prefctl.adapters.services import KillallNotifier
from prefctl.core.commands import ExecMode
from prefctl.core.config import load_config
from prefctl.core.controller import Reconciler
from prefctl.core.errors import ConfigError, ConfigNotFoundError
from prefctl.core.paths import get_config_path
from prefctl.core.snapshot import SnapshotManager
from prefctl.models.target import TargetModel
from prefctl.utils.formatting import print_error, print_info, print_warning


@dataclass(slots=True)
class GlobalOptions:
    """Options given before the subcommand.

    Attributes:
        verbose: Enable debug logging.
        quiet: Suppress non-essential output.
        config_path: Explicit config file, or None for the default lookup.
        yes: Answer yes to every prompt.
        no_restart: Never restart services after changes.
    """

    verbose: bool = False
    quiet: bool = False
    config_path: Path | None = None
    yes: bool = False
    no_restart: bool = False


def get_options(ctx: typer.Context) -> GlobalOptions:
    """Get the global options stored by the main callback."""
    obj = ctx.find_root().obj
    if isinstance(obj, GlobalOptions):
        return obj
    return GlobalOptions()


def resolve_config_path(ctx: typer.Context) -> Path:
    """Get the config path for this invocation."""
    return get_options(ctx).config_path or get_config_path()


def require_config(ctx: typer.Context) -> TargetModel:
    """Load the configuration, exiting with code 1 on failure.

    Raises:
        typer.Exit: If the config is missing or invalid.
    """
    path = resolve_config_path(ctx)
    try:
        return load_config(path)
    except ConfigNotFoundError as e:
        print_error(f"Config not found: {path}")
        print_info("Run 'prefctl init' to create a starter config.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e


def get_package_store(dry_run: bool = False) -> PackageStore | None:
    """Get the Homebrew store, or None with a warning if brew is missing."""
    store = BrewPackageStore(dry_run=dry_run)
    if not store.is_available():
        print_warning("Homebrew is not available; skipping packages.")
        return None
    return store


def build_reconciler(
    ctx: typer.Context,
    target: TargetModel,
    *,
    with_packages: bool = False,
) -> Reconciler:
    """Build a Reconciler wired to the real macOS adapters."""
    options = get_options(ctx)
    pref_store = DefaultsPreferenceStore()
    if not pref_store.is_available():
        print_error("The 'defaults' tool is not available; prefctl only runs on macOS.")
        raise typer.Exit(code=1)

    pkg_store = get_package_store() if with_packages and target.packages else None
    notifier = None if options.no_restart else KillallNotifier()
    return Reconciler(
        target,
        pref_store,
        SnapshotManager(),
        pkg_store=pkg_store,
        notifier=notifier,
    )


def resolve_exec_mode(all_commands: bool, flagged: bool) -> ExecMode:
    """Turn the all-commands and flagged-only switches into an ExecMode.

    Raises:
        typer.BadParameter: If both switches are given.
    """
    if all_commands and flagged:
        msg = "Running all commands and only flagged commands cannot be combined."
        raise typer.BadParameter(msg)
    if all_commands:
        return ExecMode.ALL
    if flagged:
        return ExecMode.FLAGGED
    return ExecMode.REGULAR


def confirm(ctx: typer.Context, question: str) -> bool:
    """Ask a yes/no question unless --yes was given."""
    if get_options(ctx).yes:
        return True
    return typer.confirm(question)
