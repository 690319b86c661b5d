"""Data models for prefctl.

This module exports the core data structures used throughout the application.
"""

from prefctl.models.config import BrewConfig, CommandEntry, ConfigDocument
from prefctl.models.package import PackageKind
from prefctl.models.plan import DriftReport, OperationPlan, PackageDelta, PreferenceDrift
from prefctl.models.result import (
    CommandOutcome,
    CommandRunReport,
    OutcomeStatus,
    PackageResult,
    PreferenceOp,
    PreferenceResult,
    ReplayReport,
    RunReport,
)
from prefctl.models.snapshot import Snapshot, SnapshotEntry
from prefctl.models.target import CommandSpec, PackageSpec, PreferenceEntry, TargetModel
from prefctl.models.value import PrefValue, ValueKind

__all__ = [
    "BrewConfig",
    "CommandEntry",
    "CommandOutcome",
    "CommandRunReport",
    "CommandSpec",
    "ConfigDocument",
    "DriftReport",
    "OperationPlan",
    "OutcomeStatus",
    "PackageDelta",
    "PackageKind",
    "PackageResult",
    "PackageSpec",
    "PrefValue",
    "PreferenceDrift",
    "PreferenceEntry",
    "PreferenceOp",
    "PreferenceResult",
    "ReplayReport",
    "RunReport",
    "Snapshot",
    "SnapshotEntry",
    "TargetModel",
    "ValueKind",
]
