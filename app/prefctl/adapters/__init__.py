"""Adapters between the reconciliation engine and the live system."""

from prefctl.adapters.base import (
    ExecResult,
    PackageStore,
    PreferenceStore,
    ProcessExecutor,
    ServiceNotifier,
)
from prefctl.adapters.defaults import DefaultsPreferenceStore
from prefctl.adapters.homebrew import BrewPackageStore
from prefctl.adapters.process import DryRunExecutor, ShellExecutor
from prefctl.adapters.services import KillallNotifier

__all__ = [
    "BrewPackageStore",
    "DefaultsPreferenceStore",
    "DryRunExecutor",
    "ExecResult",
    "KillallNotifier",
    "PackageStore",
    "PreferenceStore",
    "ProcessExecutor",
    "ServiceNotifier",
    "ShellExecutor",
]
