"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from fakes import FakePackageStore, FakePreferenceStore, RecordingExecutor
from prefctl.core.controller import Reconciler
from prefctl.core.snapshot import SnapshotManager
from prefctl.models.target import TargetModel
from prefctl.models.value import PrefValue

SAMPLE_CONFIG = """\
[set.dock]
tilesize = 46
autohide = true

[set.finder]
ShowPathbar = true

[set.NSGlobalDomain]
KeyRepeat = 2

[set.NSGlobalDomain.com.apple.keyboard]
fnState = true

[vars]
wallpaper = "/Library/Desktop Pictures/Sonoma.heic"

[commands.wallpaper]
run = "osascript -e 'set desktop picture to \\"$wallpaper\\"'"

[commands.spotlight]
run = "mdutil -i off /"
sudo = true
ensure_first = true

[brew]
formulae = ["git", "ripgrep"]
casks = ["iterm2"]
taps = ["homebrew/cask-fonts"]
"""


@pytest.fixture
def sample_config_text() -> str:
    """A representative configuration document."""
    return SAMPLE_CONFIG


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write the sample configuration to a temporary file."""
    path = tmp_path / "prefctl.toml"
    path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    return path


@pytest.fixture
def pref_store() -> FakePreferenceStore:
    """A preference store with the Dock tile size at 50."""
    return FakePreferenceStore(
        {
            "com.apple.dock": {
                "tilesize": PrefValue.integer(50),
                "orientation": PrefValue.string("bottom"),
            },
            "com.apple.finder": {},
            "NSGlobalDomain": {"KeyRepeat": PrefValue.integer(2)},
        }
    )


@pytest.fixture
def pkg_store() -> FakePackageStore:
    """A package store with some of the sample packages installed."""
    return FakePackageStore(formulae={"git", "wget", "openssl@3"}, dependencies={"openssl@3"})


@pytest.fixture
def executor() -> RecordingExecutor:
    """An executor that records command lines."""
    return RecordingExecutor()


@pytest.fixture
def snapshots(tmp_path: Path) -> SnapshotManager:
    """A snapshot manager writing into a temporary state directory."""
    return SnapshotManager(tmp_path / "state" / "snapshot.json")


@pytest.fixture
def reconciler_factory(
    pref_store: FakePreferenceStore,
    pkg_store: FakePackageStore,
    snapshots: SnapshotManager,
    executor: RecordingExecutor,
) -> Callable[..., Reconciler]:
    """Stand-in for build_reconciler that wires the fakes."""

    def build(ctx: Any, target: TargetModel, *, with_packages: bool = False) -> Reconciler:
        return Reconciler(
            target,
            pref_store,
            snapshots,
            executor=executor,
            pkg_store=pkg_store if with_packages else None,
        )

    return build
