"""Homebrew package store.

Lists taps, formulae and casks with the ``brew`` CLI and installs missing
items one at a time so a single failure does not hide the others.
"""

import json
import logging
import subprocess

from prefctl.adapters.base import PackageStore
from prefctl.core.errors import AdapterError
from prefctl.models.package import PackageKind
from prefctl.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


class BrewPackageStore(PackageStore):
    """Package store for Homebrew.

    Attributes:
        dry_run: If True, install() only logs what it would do.
    """

    _LIST_TIMEOUT: float = 120.0
    # Casks and source builds can take a long time
    _INSTALL_TIMEOUT: float = 1800.0

    def __init__(self, dry_run: bool = False) -> None:
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if store is in dry-run mode."""
        return self._dry_run

    def is_available(self) -> bool:
        """Check if brew is on PATH."""
        return command_exists("brew")

    def _brew(
        self, args: list[str], timeout: float, *, package: str | None = None
    ) -> CommandResult:
        try:
            return run_command(["brew", *args], timeout=timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            msg = f"Failed to run brew {args[0]}: {e}"
            raise AdapterError(msg, package=package) from e

    def _lines(self, args: list[str]) -> set[str]:
        result = self._brew(args, self._LIST_TIMEOUT)
        if not result.success:
            msg = f"brew {' '.join(args)} failed: {result.error_text}"
            raise AdapterError(msg)
        return set(result.lines())

    def list_installed(self, kind: PackageKind, explicit_only: bool = False) -> set[str]:
        """List installed items of one kind.

        Dependencies can only be told apart for formulae; taps and casks
        are always returned in full.
        """
        if not self.is_available():
            msg = "Homebrew is not available on this system"
            raise AdapterError(msg)

        if kind == PackageKind.TAP:
            return self._lines(["tap"])
        if kind == PackageKind.CASK:
            return self._lines(["list", "--cask", "--full-name", "-1"])
        if explicit_only:
            return self._explicit_formulae()
        return self._lines(["list", "--formula", "--full-name", "-1"])

    def _explicit_formulae(self) -> set[str]:
        """List formulae that were not installed only as a dependency."""
        result = self._brew(["info", "--json=v2", "--installed"], self._LIST_TIMEOUT)
        if not result.success:
            msg = f"brew info failed: {result.error_text}"
            raise AdapterError(msg)

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            msg = f"Could not parse brew info output: {e}"
            raise AdapterError(msg) from e

        explicit: set[str] = set()
        for formula in data.get("formulae", []):
            installs = formula.get("installed") or []
            if not installs:
                continue
            as_dependency = all(i.get("installed_as_dependency", False) for i in installs)
            on_request = any(i.get("installed_on_request", False) for i in installs)
            if on_request or not as_dependency:
                explicit.add(formula.get("full_name") or formula["name"])
        return explicit

    def install(self, name: str, kind: PackageKind) -> None:
        """Install a formula or cask, or add a tap."""
        if kind == PackageKind.TAP:
            args = ["tap", name]
        elif kind == PackageKind.CASK:
            args = ["install", "--cask", name]
        else:
            args = ["install", "--formula", name]

        if self.dry_run:
            logger.info("Would run: brew %s", " ".join(args))
            return

        logger.info("Running: brew %s", " ".join(args))
        result = self._brew(args, self._INSTALL_TIMEOUT, package=name)
        if not result.success:
            error = result.stderr.strip() or f"brew {args[0]} failed"
            raise AdapterError(f"Failed to install {kind.value} {name}: {error}", package=name)
