"""Unit tests for the snapshot manager."""

import json
import logging
from unittest.mock import patch

import pytest
from fakes import FakePreferenceStore
from prefctl.core.errors import (
    CaptureOrderError,
    SnapshotCorruptError,
    SnapshotError,
    SnapshotNotFoundError,
)
from prefctl.core.snapshot import SnapshotManager
from prefctl.models.result import PreferenceOp
from prefctl.models.value import PrefValue


class TestCapture:
    """Tests for capturing prior values."""

    def test_capture_outside_apply(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Capturing without begin_capture is a programming error."""
        with pytest.raises(CaptureOrderError):
            snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")

    def test_require_captured(self, snapshots: SnapshotManager) -> None:
        """Mutating an uncaptured key is refused."""
        snapshots.begin_capture()

        with pytest.raises(CaptureOrderError, match="never captured"):
            snapshots.require_captured("com.apple.dock", "tilesize")

    def test_first_capture_wins(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Capturing a key twice keeps the original prior."""
        snapshots.begin_capture()
        first = snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")
        pref_store.set("com.apple.dock", "tilesize", PrefValue.integer(46))
        second = snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")

        assert first == second == PrefValue.integer(50)
        assert snapshots.pending is not None
        assert len(snapshots.pending.entries) == 1

    def test_absent_key_recorded(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """A key that does not exist is captured as None."""
        snapshots.begin_capture()

        prior = snapshots.capture_before(pref_store, "com.apple.dock", "autohide")

        assert prior is None
        assert snapshots.pending is not None
        assert snapshots.pending.entries[0].prior is None


class TestCommit:
    """Tests for writing the snapshot."""

    def test_commit_writes_json(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """The committed file holds the captured entries and digest."""
        snapshots.begin_capture("digest")
        snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")

        path = snapshots.commit()

        assert path == snapshots.path
        data = json.loads(snapshots.path.read_text())
        assert data["config_digest"] == "digest"
        assert data["entries"][0]["prior"] == {"type": "int", "value": 50}
        assert list(snapshots.path.parent.glob("*.tmp")) == []

    def test_empty_commit_keeps_previous(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """An apply that changed nothing leaves the last snapshot alone."""
        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")
        snapshots.commit()
        before = snapshots.path.read_text()

        snapshots.begin_capture()
        assert snapshots.commit() is None
        assert snapshots.path.read_text() == before

    def test_new_apply_replaces_snapshot(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Each apply that changes something replaces the file wholesale."""
        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")
        snapshots.commit()

        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "NSGlobalDomain", "KeyRepeat")
        snapshots.commit()

        assert [e.key for e in snapshots.load().entries] == ["KeyRepeat"]

    def test_failed_write_leaves_old_file(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """If the move fails, the previous snapshot is untouched."""
        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")
        snapshots.commit()
        before = snapshots.path.read_text()

        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "NSGlobalDomain", "KeyRepeat")
        with (
            patch("prefctl.core.snapshot.os.replace", side_effect=OSError("disk full")),
            pytest.raises(SnapshotError, match="disk full"),
        ):
            snapshots.commit()

        assert snapshots.path.read_text() == before
        assert list(snapshots.path.parent.glob("*.tmp")) == []

    def test_record_command(self, snapshots: SnapshotManager) -> None:
        """Command names are recorded once."""
        snapshots.begin_capture()
        snapshots.record_command("wallpaper")
        snapshots.record_command("wallpaper")
        snapshots.commit()

        assert snapshots.load().commands_executed == ["wallpaper"]

    def test_commands_only_commit_keeps_entries(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Commands from an apply that changed no key join the existing snapshot."""
        snapshots.begin_capture()
        snapshots.capture_before(pref_store, "com.apple.dock", "tilesize")
        snapshots.record_command("spotlight")
        snapshots.commit()

        snapshots.begin_capture()
        snapshots.record_command("wallpaper")
        snapshots.commit()

        snapshot = snapshots.load()
        assert [e.key for e in snapshot.entries] == ["tilesize"]
        assert snapshot.commands_executed == ["spotlight", "wallpaper"]

    def test_corrupt_previous_is_replaced(
        self, snapshots: SnapshotManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A corrupt snapshot is reported and a fresh one is written."""
        snapshots.path.parent.mkdir(parents=True, exist_ok=True)
        snapshots.path.write_text("{not json", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="prefctl.core.snapshot"):
            snapshots.begin_capture()
        snapshots.record_command("wallpaper")
        snapshots.commit()

        assert "fresh baseline" in caplog.text
        snapshot = snapshots.load()
        assert snapshot.entries == []
        assert snapshot.commands_executed == ["wallpaper"]


class TestLoad:
    """Tests for loading the snapshot."""

    def test_missing(self, snapshots: SnapshotManager) -> None:
        """No file means nothing to revert."""
        with pytest.raises(SnapshotNotFoundError, match="Nothing to revert"):
            snapshots.load()

    def test_corrupt(self, snapshots: SnapshotManager) -> None:
        """Garbage is reported as corrupt."""
        snapshots.path.parent.mkdir(parents=True)
        snapshots.path.write_text("{not json")

        with pytest.raises(SnapshotCorruptError):
            snapshots.load()

    def test_delete(self, snapshots: SnapshotManager) -> None:
        """delete reports whether a file was removed."""
        assert snapshots.delete() is False
        snapshots.path.parent.mkdir(parents=True)
        snapshots.path.write_text("{}")

        assert snapshots.delete() is True
        assert not snapshots.exists()


class TestApplyAndClear:
    """Tests for reverting the snapshot."""

    def _apply(self, snapshots: SnapshotManager, store: FakePreferenceStore) -> None:
        snapshots.begin_capture()
        changes = [("tilesize", PrefValue.integer(46)), ("autohide", PrefValue.boolean(True))]
        for key, value in changes:
            snapshots.capture_before(store, "com.apple.dock", key)
            store.set("com.apple.dock", key, value)
        snapshots.commit()

    def test_restores_and_removes(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Prior values come back and new keys are deleted, in reverse order."""
        self._apply(snapshots, pref_store)

        report = snapshots.apply_and_clear(pref_store)

        assert [(r.key, r.op) for r in report.results] == [
            ("autohide", PreferenceOp.REMOVE),
            ("tilesize", PreferenceOp.RESTORE),
        ]
        assert pref_store.data["com.apple.dock"]["tilesize"] == PrefValue.integer(50)
        assert "autohide" not in pref_store.data["com.apple.dock"]
        assert report.snapshot_deleted
        assert not snapshots.exists()

    def test_dry_run_keeps_everything(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """A dry run reports without writing or deleting."""
        self._apply(snapshots, pref_store)
        pref_store.calls.clear()

        report = snapshots.apply_and_clear(pref_store, dry_run=True)

        assert len(report.results) == 2
        assert pref_store.writes == []
        assert snapshots.exists()

    def test_partial_failure_resumes(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Failed entries stay in the snapshot; a retry finishes the job."""
        self._apply(snapshots, pref_store)
        pref_store.fail_writes.add(("com.apple.dock", "tilesize"))

        first = snapshots.apply_and_clear(pref_store)

        assert [r.key for r in first.failed] == ["tilesize"]
        assert [r.key for r in first.succeeded] == ["autohide"]
        assert not first.snapshot_deleted
        assert [e.key for e in snapshots.load().entries] == ["tilesize"]

        pref_store.fail_writes.clear()
        second = snapshots.apply_and_clear(pref_store)

        assert second.ok
        assert pref_store.data["com.apple.dock"]["tilesize"] == PrefValue.integer(50)
        assert not snapshots.exists()

    def test_commands_are_reported_not_reverted(
        self, snapshots: SnapshotManager, pref_store: FakePreferenceStore
    ) -> None:
        """Executed command names are surfaced to the caller."""
        snapshots.begin_capture()
        snapshots.record_command("spotlight")
        snapshots.commit()

        report = snapshots.apply_and_clear(pref_store)

        assert report.commands_not_reverted == ("spotlight",)
        assert report.results == ()
