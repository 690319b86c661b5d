"""Snapshot persistence for reversible applies.

This module provides the SnapshotManager class. During an apply it
captures the prior value of every key before that key is written, then
persists the captured entries as one JSON document. ``unapply`` replays
the document in reverse.

Only one snapshot exists at a time; each apply that changes a key
replaces it.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import TYPE_CHECKING

from prefctl.core.errors import (
    AdapterError,
    CaptureOrderError,
    SnapshotCorruptError,
    SnapshotError,
    SnapshotNotFoundError,
)
from prefctl.core.paths import get_snapshot_path
from prefctl.models.result import PreferenceOp, PreferenceResult, ReplayReport
from prefctl.models.snapshot import Snapshot, SnapshotEntry

if TYPE_CHECKING:
    from prefctl.adapters.base import PreferenceStore
    from prefctl.models.value import PrefValue

logger = logging.getLogger(__name__)


class SnapshotManager:
    """Manages the snapshot file.

    Storage location: ~/.local/state/prefctl/snapshot.json

    The manager is an explicit handle passed to the controller; nothing
    about the snapshot lives in module state.

    Attributes:
        path: Location of the snapshot file.
    """

    def __init__(self, path: Path | None = None) -> None:
        """Initialize SnapshotManager.

        Args:
            path: Optional override for the snapshot file location.
        """
        self.path = path if path is not None else get_snapshot_path()
        self._pending: Snapshot | None = None
        self._captured: dict[tuple[str, str], PrefValue | None] = {}
        self._previous: Snapshot | None = None

    @property
    def capturing(self) -> bool:
        """True between begin_capture() and the end of the apply."""
        return self._pending is not None

    @property
    def pending(self) -> Snapshot | None:
        """The snapshot being built by the current apply, if any."""
        return self._pending

    def begin_capture(self, config_digest: str | None = None) -> None:
        """Start a fresh snapshot for a new apply.

        The committed snapshot is read so a later commit can keep it; a
        corrupt one is logged and will be replaced.

        Args:
            config_digest: Digest of the config being applied.
        """
        self._pending = Snapshot(config_digest=config_digest)
        self._captured = {}
        self._previous = self._load_previous()

    def capture_before(self, store: PreferenceStore, domain: str, key: str) -> PrefValue | None:
        """Record the current value of a key before it is mutated.

        Capturing the same key again within one apply returns the first
        captured value without reading the store.

        Returns:
            The prior value, or None if the key did not exist.

        Raises:
            CaptureOrderError: If begin_capture() was not called.
            AdapterError: If the live value cannot be read.
        """
        if self._pending is None:
            msg = "capture_before() called outside of an apply"
            raise CaptureOrderError(msg)

        ident = (domain, key)
        if ident in self._captured:
            return self._captured[ident]

        prior = store.get(domain, key)
        self._captured[ident] = prior
        self._pending.entries.append(SnapshotEntry(domain=domain, key=key, prior=prior))
        logger.debug(
            "Captured %s | %s = %s",
            domain,
            key,
            prior.display() if prior is not None else "(unset)",
        )
        return prior

    def require_captured(self, domain: str, key: str) -> None:
        """Assert that a key was captured before it is mutated.

        Raises:
            CaptureOrderError: If the key has not been captured.
        """
        if (domain, key) not in self._captured:
            msg = f"{domain} | {key} is about to be mutated but was never captured"
            raise CaptureOrderError(msg)

    def record_command(self, name: str) -> None:
        """Record the name of an auxiliary command that ran."""
        if self._pending is None:
            msg = "record_command() called outside of an apply"
            raise CaptureOrderError(msg)
        if name not in self._pending.commands_executed:
            self._pending.commands_executed.append(name)

    def commit(self) -> Path | None:
        """Persist the pending snapshot atomically.

        A pending snapshot that captured no key never replaces an existing
        one, so the last real change stays revertible. Commands it recorded
        are added to the existing snapshot instead. A corrupt existing file
        is replaced.

        Returns:
            Path of the written file, or None if nothing was written.

        Raises:
            CaptureOrderError: If begin_capture() was not called.
            SnapshotError: If the file cannot be written.
        """
        if self._pending is None:
            msg = "commit() called outside of an apply"
            raise CaptureOrderError(msg)
        if self._pending.is_empty:
            logger.debug("Nothing captured; keeping the existing snapshot")
            return None

        snapshot = self._pending
        if not snapshot.entries:
            previous = self._previous
            if previous is not None:
                for name in snapshot.commands_executed:
                    if name not in previous.commands_executed:
                        previous.commands_executed.append(name)
                snapshot = previous

        self._write(snapshot)
        logger.info("Snapshot with %d entries written to %s", len(snapshot.entries), self.path)
        return self.path

    def _load_previous(self) -> Snapshot | None:
        """Load the committed snapshot, or None if absent or corrupt."""
        try:
            return self.load()
        except SnapshotNotFoundError:
            return None
        except SnapshotCorruptError as e:
            logger.warning("%s; starting a fresh baseline", e)
            return None

    def _write(self, snapshot: Snapshot) -> None:
        """Write a snapshot to a temporary file and move it into place."""
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write(snapshot.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp_path), str(self.path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise SnapshotError(f"Failed to write snapshot: {e}") from e

    def exists(self) -> bool:
        """Check if a snapshot file exists."""
        return self.path.exists()

    def load(self) -> Snapshot:
        """Load the snapshot from disk.

        Raises:
            SnapshotNotFoundError: If there is no snapshot.
            SnapshotCorruptError: If the file cannot be decoded.
        """
        if not self.path.exists():
            raise SnapshotNotFoundError("Nothing to revert: no snapshot found.")

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SnapshotError(f"Failed to read snapshot: {e}") from e

        try:
            return Snapshot.from_json(text)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            raise SnapshotCorruptError(f"Snapshot {self.path} is corrupt: {e}") from e

    def delete(self) -> bool:
        """Delete the snapshot file.

        Returns:
            True if a file was removed.

        Raises:
            SnapshotError: If the file exists but cannot be removed.
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SnapshotError(f"Failed to delete snapshot: {e}") from e
        return True

    def apply_and_clear(self, store: PreferenceStore, dry_run: bool = False) -> ReplayReport:
        """Revert the snapshot through the preference store.

        Entries are replayed in reverse capture order. Keys that had a
        prior value are written back; keys that did not exist are deleted.
        Every entry is attempted even after a failure. The file is deleted
        only when every entry succeeded; otherwise it is rewritten with
        just the failed entries so a retry resumes where this one stopped.

        Args:
            store: Preference store to write through.
            dry_run: Report what would be done without writing.

        Returns:
            ReplayReport with one result per entry, in replay order.

        Raises:
            SnapshotNotFoundError: If there is no snapshot.
            SnapshotCorruptError: If the file cannot be decoded.
            SnapshotError: If the file cannot be updated afterwards.
        """
        snapshot = self.load()
        results: list[PreferenceResult] = []
        failed: set[tuple[str, str]] = set()

        for entry in reversed(snapshot.entries):
            op = PreferenceOp.RESTORE if entry.prior is not None else PreferenceOp.REMOVE
            if dry_run:
                results.append(
                    PreferenceResult(entry.domain, entry.key, op, success=True, value=entry.prior)
                )
                continue

            try:
                if entry.prior is not None:
                    store.set(entry.domain, entry.key, entry.prior)
                else:
                    store.unset(entry.domain, entry.key)
            except AdapterError as e:
                logger.warning("Failed to revert %s | %s: %s", entry.domain, entry.key, e)
                failed.add(entry.ident)
                results.append(
                    PreferenceResult(
                        entry.domain, entry.key, op, success=False, value=entry.prior, error=str(e)
                    )
                )
                continue
            results.append(
                PreferenceResult(entry.domain, entry.key, op, success=True, value=entry.prior)
            )

        deleted = False
        if not dry_run:
            if failed:
                remaining = Snapshot(
                    entries=[e for e in snapshot.entries if e.ident in failed],
                    commands_executed=list(snapshot.commands_executed),
                    created_at=snapshot.created_at,
                    config_digest=snapshot.config_digest,
                    tool_version=snapshot.tool_version,
                )
                self._write(remaining)
                logger.info("%d entries left in snapshot for retry", len(remaining.entries))
            else:
                deleted = self.delete()

        return ReplayReport(
            results=tuple(results),
            snapshot_deleted=deleted,
            commands_not_reverted=tuple(snapshot.commands_executed),
            dry_run=dry_run,
        )
