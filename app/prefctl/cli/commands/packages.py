"""Packages command implementation.

Backs up installed Homebrew items into the configuration and installs
the declared ones that are missing. Also lists App Store apps.
"""

from typing import Annotated

import typer

from prefctl.adapters.appstore import MasAppStore
from prefctl.cli.display import create_app_store_table, create_package_results_table
from prefctl.cli.types import (
    build_reconciler,
    get_package_store,
    require_config,
    resolve_config_path,
)
from prefctl.core.config import config_exists, load_document, update_brew_section
from prefctl.core.errors import AdapterError, ConfigError, PrefctlError
from prefctl.models.package import PackageKind
from prefctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Back up and install Homebrew packages; list App Store apps.",
    no_args_is_help=True,
)


@app.command("backup")
def backup(
    ctx: typer.Context,
    no_deps: Annotated[
        bool,
        typer.Option(
            "--no-deps",
            help="Record only formulae installed on request, not their dependencies.",
        ),
    ] = False,
) -> None:
    """Write installed taps, formulae and casks into the [brew] section.

    Creates the configuration file if it does not exist yet. Other
    sections are kept.

    Examples:
        prefctl packages backup
        prefctl packages backup --no-deps
    """
    path = resolve_config_path(ctx)
    if config_exists(path):
        try:
            document = load_document(path)
        except ConfigError as e:
            print_error(f"Failed to load config: {e}")
            raise typer.Exit(code=1) from e
        if document.lock:
            print_error("Configuration is locked; refusing to back up packages.")
            raise typer.Exit(code=1)

    store = get_package_store()
    if store is None:
        raise typer.Exit(code=1)

    try:
        formulae = store.list_installed(PackageKind.FORMULA, explicit_only=no_deps)
        casks = store.list_installed(PackageKind.CASK)
        taps = store.list_installed(PackageKind.TAP)
        update_brew_section(sorted(formulae), sorted(casks), sorted(taps), no_deps, path)
    except (AdapterError, ConfigError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(
        f"Recorded {len(formulae)} formulae, {len(casks)} casks and {len(taps)} taps in {path}"
    )


@app.command("install")
def install(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be installed without installing.",
        ),
    ] = False,
) -> None:
    """Install declared taps, formulae and casks that are missing.

    Examples:
        prefctl packages install --dry-run
        prefctl packages install
    """
    target = require_config(ctx)
    if target.packages is None or target.packages.is_empty:
        print_info("No packages are declared in the [brew] section.")
        return

    reconciler = build_reconciler(ctx, target, with_packages=True)
    if reconciler.pkg_store is None:
        raise typer.Exit(code=1)

    try:
        results = reconciler.install_packages(dry_run=dry_run)
    except PrefctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not results:
        print_success("All declared packages are installed.")
        return

    console.print(create_package_results_table(results, dry_run=dry_run))
    failed = [r for r in results if r.failed]
    if failed:
        print_error(f"{len(failed)} of {len(results)} package(s) failed to install.")
        raise typer.Exit(code=1)
    if not dry_run:
        print_success(f"Installed {len(results)} package(s).")


@app.command("mas")
def mas() -> None:
    """List apps installed from the Mac App Store.

    Examples:
        prefctl packages mas
    """
    try:
        apps = MasAppStore().list_apps()
    except AdapterError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not apps:
        print_info("No App Store apps found.")
        return
    console.print(create_app_store_table(apps))
