"""Unit tests for packages command."""

import tomllib
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

from fakes import FakePackageStore
from prefctl.adapters.appstore import AppStoreApp
from prefctl.cli.main import app
from prefctl.core.controller import Reconciler
from prefctl.core.errors import AdapterError
from prefctl.models.package import PackageKind
from typer.testing import CliRunner

runner = CliRunner()

STORE = "prefctl.cli.commands.packages.get_package_store"
BUILD = "prefctl.cli.commands.packages.build_reconciler"


class TestPackagesHelp:
    """Tests for packages command help."""

    def test_packages_help(self) -> None:
        """Packages command lists its subcommands."""
        result = runner.invoke(app, ["packages", "--help"])
        assert result.exit_code == 0
        assert "backup" in result.stdout
        assert "install" in result.stdout
        assert "mas" in result.stdout


class TestPackagesBackup:
    """Tests for packages backup."""

    def test_backup_creates_config(self, tmp_path: Path, pkg_store: FakePackageStore) -> None:
        """A missing config is created with only a [brew] section."""
        path = tmp_path / "new.toml"

        with patch(STORE, return_value=pkg_store):
            result = runner.invoke(app, ["--config", str(path), "packages", "backup"])

        assert result.exit_code == 0, result.output
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        assert data == {
            "brew": {"formulae": ["git", "openssl@3", "wget"], "casks": [], "taps": []}
        }

    def test_backup_no_deps(self, config_file: Path, pkg_store: FakePackageStore) -> None:
        """--no-deps drops dependency formulae and keeps other sections."""
        with patch(STORE, return_value=pkg_store):
            result = runner.invoke(
                app, ["--config", str(config_file), "packages", "backup", "--no-deps"]
            )

        assert result.exit_code == 0
        data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        assert data["brew"]["formulae"] == ["git", "wget"]
        assert data["brew"]["no_deps"] is True
        assert data["set"]["dock"]["tilesize"] == 46

    def test_backup_without_brew(self, config_file: Path) -> None:
        """Missing Homebrew exits 1."""
        with patch(STORE, return_value=None):
            result = runner.invoke(app, ["--config", str(config_file), "packages", "backup"])

        assert result.exit_code == 1

    def test_backup_locked(
        self, tmp_path: Path, sample_config_text: str, pkg_store: FakePackageStore
    ) -> None:
        """A locked config is not rewritten."""
        path = tmp_path / "locked.toml"
        original = "lock = true\n" + sample_config_text
        path.write_text(original, encoding="utf-8")

        with patch(STORE, return_value=pkg_store):
            result = runner.invoke(app, ["--config", str(path), "packages", "backup"])

        assert result.exit_code == 1
        assert path.read_text(encoding="utf-8") == original


class TestPackagesInstall:
    """Tests for packages install."""

    def test_install_missing(
        self,
        config_file: Path,
        pkg_store: FakePackageStore,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """Missing items are installed taps first, casks last."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(config_file), "packages", "install"])

        assert result.exit_code == 0, result.output
        assert [kind for kind, _ in pkg_store.installs] == [
            PackageKind.TAP,
            PackageKind.FORMULA,
            PackageKind.CASK,
        ]
        assert "Installed 3 package(s)" in result.stdout

    def test_install_failure(
        self,
        config_file: Path,
        pkg_store: FakePackageStore,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """A failed install exits 1 after trying the rest."""
        pkg_store.fail.add("ripgrep")

        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(app, ["--config", str(config_file), "packages", "install"])

        assert result.exit_code == 1
        assert (PackageKind.CASK, "iterm2") in pkg_store.installs

    def test_install_dry_run(
        self,
        config_file: Path,
        pkg_store: FakePackageStore,
        reconciler_factory: Callable[..., Reconciler],
    ) -> None:
        """A dry run installs nothing."""
        with patch(BUILD, side_effect=reconciler_factory):
            result = runner.invoke(
                app, ["--config", str(config_file), "packages", "install", "--dry-run"]
            )

        assert result.exit_code == 0
        assert pkg_store.installs == []
        assert "ripgrep" in result.stdout

    def test_nothing_declared(self, tmp_path: Path) -> None:
        """A config without [brew] prints a notice."""
        path = tmp_path / "prefctl.toml"
        path.write_text("[set.dock]\ntilesize = 46\n", encoding="utf-8")

        result = runner.invoke(app, ["--config", str(path), "packages", "install"])

        assert result.exit_code == 0
        assert "No packages" in result.stdout


MAS = "prefctl.cli.commands.packages.MasAppStore"


class TestPackagesMas:
    """Tests for packages mas."""

    def test_lists_apps(self) -> None:
        """Installed App Store apps are shown in a table."""
        with patch(MAS) as mock_store:
            mock_store.return_value.list_apps.return_value = [
                AppStoreApp("497799835", "Xcode", "15.0"),
            ]
            result = runner.invoke(app, ["packages", "mas"])

        assert result.exit_code == 0, result.output
        assert "497799835" in result.stdout
        assert "Xcode" in result.stdout

    def test_no_apps(self) -> None:
        """An empty listing is reported."""
        with patch(MAS) as mock_store:
            mock_store.return_value.list_apps.return_value = []
            result = runner.invoke(app, ["packages", "mas"])

        assert result.exit_code == 0
        assert "No App Store apps" in result.stdout

    def test_mas_missing(self) -> None:
        """A missing mas binary exits 1."""
        with patch(MAS) as mock_store:
            mock_store.return_value.list_apps.side_effect = AdapterError("mas was not found")
            result = runner.invoke(app, ["packages", "mas"])

        assert result.exit_code == 1
        assert "mas was not found" in result.output
