"""Operation plans and drift reports produced by the diff engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from prefctl.models.package import INSTALL_ORDER, PackageKind
from prefctl.models.target import PreferenceEntry
from prefctl.models.value import PrefValue


@dataclass(frozen=True, slots=True)
class PackageDelta:
    """Difference between declared and installed packages.

    Attributes:
        missing: Declared but not installed, per kind, sorted by name.
        extra: Installed but not declared, per kind, sorted by name.
    """

    missing: dict[PackageKind, tuple[str, ...]] = field(default_factory=dict)
    extra: dict[PackageKind, tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_in_sync(self) -> bool:
        """True if nothing is missing or extra."""
        return not any(self.missing.values()) and not any(self.extra.values())

    def missing_of(self, kind: PackageKind) -> tuple[str, ...]:
        return self.missing.get(kind, ())

    def extra_of(self, kind: PackageKind) -> tuple[str, ...]:
        return self.extra.get(kind, ())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "missing": {k.plural: list(self.missing_of(k)) for k in INSTALL_ORDER},
            "extra": {k.plural: list(self.extra_of(k)) for k in INSTALL_ORDER},
        }


@dataclass(frozen=True, slots=True)
class OperationPlan:
    """Changes required to bring the live state to the target.

    Produced once per run by the diff engine and consumed once.

    Attributes:
        to_set: Entries whose live value is absent or different, in
            declaration order.
        to_unset: ``(domain, key)`` pairs to delete, in declaration order.
        package_delta: Package differences, or None if packages were not checked.
    """

    to_set: tuple[PreferenceEntry, ...] = ()
    to_unset: tuple[tuple[str, str], ...] = ()
    package_delta: PackageDelta | None = None

    @property
    def is_empty(self) -> bool:
        """True if no preference write is required."""
        return not self.to_set and not self.to_unset

    @property
    def total_changes(self) -> int:
        """Number of preference writes the plan would issue."""
        return len(self.to_set) + len(self.to_unset)


@dataclass(frozen=True, slots=True)
class PreferenceDrift:
    """Comparison of one declared key against its live value.

    Attributes:
        domain: Preference domain.
        key: Preference key.
        declared: Declared value.
        live: Live value, or None if the key is not set or unreadable.
        unreadable: Why the live value could not be represented, if so.
    """

    domain: str
    key: str
    declared: PrefValue
    live: PrefValue | None
    unreadable: str | None = None

    @property
    def matches(self) -> bool:
        """True when the live value equals the declared value."""
        return self.live is not None and self.live == self.declared


@dataclass(frozen=True, slots=True)
class DriftReport:
    """Human-facing status report.

    Attributes:
        preferences: One comparison per declared key, in declaration order.
        extra_keys: Live keys in declared domains that the target does not
            mention. Reported only, never removed.
        package_delta: Package differences, or None if not checked.
        config_changed: True if the config differs from the one last applied,
            None if unknown.
    """

    preferences: tuple[PreferenceDrift, ...] = ()
    extra_keys: dict[str, tuple[str, ...]] = field(default_factory=dict)
    package_delta: PackageDelta | None = None
    config_changed: bool | None = None

    @property
    def drifted(self) -> tuple[PreferenceDrift, ...]:
        """Declared keys whose live value differs."""
        return tuple(p for p in self.preferences if not p.matches)

    @property
    def is_in_sync(self) -> bool:
        """True if every declared key and package matches."""
        packages_ok = self.package_delta is None or self.package_delta.is_in_sync
        return not self.drifted and packages_ok

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "in_sync": self.is_in_sync,
            "preferences": [
                {
                    "domain": p.domain,
                    "key": p.key,
                    "declared": p.declared.to_python(),
                    "live": p.live.to_python() if p.live is not None else None,
                    "matches": p.matches,
                    "unreadable": p.unreadable,
                }
                for p in self.preferences
            ],
            "extra_keys": {d: list(keys) for d, keys in self.extra_keys.items()},
            "packages": self.package_delta.to_dict() if self.package_delta else None,
            "config_changed": self.config_changed,
        }
