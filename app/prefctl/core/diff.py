"""Diff engine for comparing the target model with live state.

This module provides the DiffEngine class that computes which preference
writes an apply or reset must issue, which Homebrew items are missing or
extra, and the drift report shown by ``prefctl status``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prefctl.core.config import GLOBAL_DOMAIN
from prefctl.core.errors import AdapterError, UnsupportedValueError
from prefctl.models.package import INSTALL_ORDER, PackageKind
from prefctl.models.plan import DriftReport, OperationPlan, PackageDelta, PreferenceDrift

if TYPE_CHECKING:
    from prefctl.adapters.base import PackageStore, PreferenceStore
    from prefctl.models.target import PackageSpec, TargetModel
    from prefctl.models.value import PrefValue

logger = logging.getLogger(__name__)


def _declared_of(spec: PackageSpec, kind: PackageKind) -> frozenset[str]:
    if kind == PackageKind.TAP:
        return spec.taps
    if kind == PackageKind.CASK:
        return spec.casks
    return spec.formulae


def _read_live(
    pref_store: PreferenceStore, domain: str, key: str
) -> tuple[PrefValue | None, str | None]:
    """Read a live value; an unrepresentable one comes back as an error text."""
    try:
        return pref_store.get(domain, key), None
    except UnsupportedValueError as e:
        logger.warning("%s", e)
        return None, str(e)


class DiffEngine:
    """Engine for computing differences between the target and the system.

    Reads go through the adapters only; the engine never writes.

    Example:
        >>> from prefctl.core.config import load_config
        >>> from prefctl.adapters import DefaultsPreferenceStore
        >>> engine = DiffEngine(load_config())
        >>> plan = engine.plan(DefaultsPreferenceStore())
        >>> plan.total_changes
        1
    """

    def __init__(self, target: TargetModel) -> None:
        """Initialize the diff engine.

        Args:
            target: The desired state to compare against.
        """
        self.target = target

    def check_domains(self, pref_store: PreferenceStore) -> None:
        """Verify every declared domain exists.

        Raises:
            AdapterError: For the first unknown domain.
        """
        for domain in self.target.domains:
            if domain == GLOBAL_DOMAIN:
                continue
            if not pref_store.domain_exists(domain):
                msg = (
                    f"Unknown preference domain: {domain} "
                    "(use --disable-checks to write it anyway)"
                )
                raise AdapterError(msg, domain=domain)

    def plan(
        self,
        pref_store: PreferenceStore,
        pkg_store: PackageStore | None = None,
        check_domains: bool = True,
    ) -> OperationPlan:
        """Plan the writes that bring live preferences to the target.

        A declared key is planned if it is absent or its live value differs
        under typed equality. A live value of a type prefctl cannot
        represent counts as different. Equal keys are omitted, so applying an
        unchanged target twice plans nothing the second time.

        Args:
            pref_store: Store to read live values from.
            pkg_store: If given, the package delta is computed too.
            check_domains: Reject unknown domains before planning.

        Returns:
            OperationPlan with entries in declaration order.

        Raises:
            AdapterError: If a domain is unknown or a value cannot be read.
        """
        if check_domains:
            self.check_domains(pref_store)

        to_set = []
        for entry in self.target.preferences:
            live, unreadable = _read_live(pref_store, entry.domain, entry.key)
            if live is not None and live == entry.value:
                continue
            logger.debug(
                "Planned %s | %s: %s -> %s",
                entry.domain,
                entry.key,
                live.display() if live is not None else unreadable or "(unset)",
                entry.value.display(),
            )
            to_set.append(entry)

        delta = self.package_delta(pkg_store) if pkg_store is not None else None
        return OperationPlan(to_set=tuple(to_set), package_delta=delta)

    def reset_plan(self, pref_store: PreferenceStore) -> OperationPlan:
        """Plan deletes for every declared key that currently has a value.

        Returns:
            OperationPlan whose ``to_unset`` follows declaration order.
        """
        to_unset = []
        for entry in self.target.preferences:
            live, unreadable = _read_live(pref_store, entry.domain, entry.key)
            if live is not None or unreadable is not None:
                to_unset.append(entry.ident)
        return OperationPlan(to_unset=tuple(to_unset))

    def package_delta(self, pkg_store: PackageStore) -> PackageDelta:
        """Compare declared Homebrew items with installed ones.

        When dependency tracking is off, only explicitly installed items
        count as installed, so a declared item present only as a
        dependency is reported missing.

        Returns:
            PackageDelta; empty when the target declares no packages.

        Raises:
            AdapterError: If the package store cannot be queried.
        """
        spec = self.target.packages
        if spec is None:
            return PackageDelta()

        missing: dict[PackageKind, tuple[str, ...]] = {}
        extra: dict[PackageKind, tuple[str, ...]] = {}
        for kind in INSTALL_ORDER:
            declared = _declared_of(spec, kind)
            installed = pkg_store.list_installed(
                kind, explicit_only=not spec.track_dependencies
            )
            missing[kind] = tuple(sorted(declared - installed))
            extra[kind] = tuple(sorted(installed - declared))
        return PackageDelta(missing=missing, extra=extra)

    def drift(
        self,
        pref_store: PreferenceStore,
        pkg_store: PackageStore | None = None,
        config_changed: bool | None = None,
    ) -> DriftReport:
        """Build the status report.

        Extra keys are listed per declared domain; NSGlobalDomain is left
        out because it always holds hundreds of unrelated keys.

        Args:
            pref_store: Store to read live values from.
            pkg_store: If given, the package delta is included.
            config_changed: Whether the config differs from the last apply.

        Returns:
            DriftReport with one comparison per declared key.
        """
        comparisons = []
        for entry in self.target.preferences:
            live, unreadable = _read_live(pref_store, entry.domain, entry.key)
            comparisons.append(
                PreferenceDrift(
                    domain=entry.domain,
                    key=entry.key,
                    declared=entry.value,
                    live=live,
                    unreadable=unreadable,
                )
            )

        declared_keys: dict[str, set[str]] = {}
        for entry in self.target.preferences:
            declared_keys.setdefault(entry.domain, set()).add(entry.key)

        extra_keys: dict[str, tuple[str, ...]] = {}
        for domain, keys in declared_keys.items():
            if domain == GLOBAL_DOMAIN or not pref_store.domain_exists(domain):
                continue
            unmentioned = sorted(set(pref_store.keys(domain)) - keys)
            if unmentioned:
                extra_keys[domain] = tuple(unmentioned)

        delta = self.package_delta(pkg_store) if pkg_store is not None else None
        return DriftReport(
            preferences=tuple(comparisons),
            extra_keys=extra_keys,
            package_delta=delta,
            config_changed=config_changed,
        )
