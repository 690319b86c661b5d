"""Snapshot models for reversible applies.

A snapshot records, for every preference key an apply touched, the value
it had before the change. It is the only input ``unapply`` trusts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from prefctl import __version__
from prefctl.models.value import PrefValue

SNAPSHOT_FORMAT_VERSION = 1


@dataclass(frozen=True, slots=True)
class SnapshotEntry:
    """Prior state of one preference key.

    Attributes:
        domain: Preference domain.
        key: Preference key.
        prior: Value before the change, or None if the key did not exist
            and must be removed (not reset to a default) on reversal.
    """

    domain: str
    key: str
    prior: PrefValue | None

    @property
    def ident(self) -> tuple[str, str]:
        """The ``(domain, key)`` pair identifying this entry."""
        return (self.domain, self.key)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "domain": self.domain,
            "key": self.key,
            "prior": self.prior.to_json() if self.prior is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotEntry:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the prior value is malformed.
            TypeError: If the prior value payload has the wrong type.
        """
        prior_raw = data["prior"]
        return cls(
            domain=data["domain"],
            key=data["key"],
            prior=PrefValue.from_json(prior_raw) if prior_raw is not None else None,
        )


@dataclass(slots=True)
class Snapshot:
    """Persisted record of pre-change state.

    Entries are appended in capture order during one apply and replayed in
    reverse by ``unapply``.

    Attributes:
        entries: Captured prior states, in capture order.
        commands_executed: Names of auxiliary commands run after the change.
        created_at: ISO 8601 timestamp with timezone.
        config_digest: SHA-256 of the config file that was applied.
        tool_version: prefctl version that wrote the snapshot.
    """

    entries: list[SnapshotEntry] = field(default_factory=list)
    commands_executed: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    config_digest: str | None = None
    tool_version: str = __version__

    def __post_init__(self) -> None:
        """Reject duplicate ``(domain, key)`` entries."""
        seen: set[tuple[str, str]] = set()
        for entry in self.entries:
            if entry.ident in seen:
                msg = f"Duplicate snapshot entry {entry.domain} | {entry.key}"
                raise ValueError(msg)
            seen.add(entry.ident)

    @property
    def is_empty(self) -> bool:
        """True when nothing was captured and no command ran."""
        return not self.entries and not self.commands_executed

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "format": SNAPSHOT_FORMAT_VERSION,
            "version": self.tool_version,
            "created_at": self.created_at,
            "config_digest": self.config_digest,
            "entries": [entry.to_dict() for entry in self.entries],
            "commands_executed": list(self.commands_executed),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the format is unsupported or entries are invalid.
            TypeError: If a field has the wrong type.
        """
        fmt = data.get("format", SNAPSHOT_FORMAT_VERSION)
        if fmt != SNAPSHOT_FORMAT_VERSION:
            msg = f"Unsupported snapshot format: {fmt}"
            raise ValueError(msg)
        commands = data.get("commands_executed", [])
        if not isinstance(commands, list):
            msg = "commands_executed must be a list"
            raise TypeError(msg)
        return cls(
            entries=[SnapshotEntry.from_dict(item) for item in data["entries"]],
            commands_executed=[str(name) for name in commands],
            created_at=data["created_at"],
            config_digest=data.get("config_digest"),
            tool_version=data.get("version", __version__),
        )

    def to_json(self) -> str:
        """Serialize to a pretty-printed JSON document."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> Snapshot:
        """Deserialize from a JSON document.

        Raises:
            json.JSONDecodeError: If text is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
            TypeError: If a field has the wrong type.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            msg = "Snapshot document must be a JSON object"
            raise TypeError(msg)
        return cls.from_dict(data)
