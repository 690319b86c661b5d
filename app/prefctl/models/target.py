"""Target model: the desired machine state for one invocation.

The loader in :mod:`prefctl.core.config` turns a validated
:class:`~prefctl.models.config.ConfigDocument` into a :class:`TargetModel`.
Everything downstream treats it as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from prefctl.models.value import PrefValue


@dataclass(frozen=True, slots=True)
class PreferenceEntry:
    """One declared ``(domain, key, value)`` triple.

    Attributes:
        domain: Effective preference domain (e.g. "com.apple.dock").
        key: Preference key within the domain.
        value: Desired typed value.
    """

    domain: str
    key: str
    value: PrefValue

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.domain:
            msg = "Preference domain cannot be empty"
            raise ValueError(msg)
        if not self.key:
            msg = "Preference key cannot be empty"
            raise ValueError(msg)

    @property
    def ident(self) -> tuple[str, str]:
        """The ``(domain, key)`` pair identifying this entry."""
        return (self.domain, self.key)


@dataclass(frozen=True, slots=True)
class PackageSpec:
    """Declared Homebrew packages.

    Attributes:
        formulae: Formulae that should be installed.
        casks: Casks that should be installed.
        taps: Taps that should be added.
        track_dependencies: If False, packages installed only as
            dependencies are ignored when comparing against the live state.
    """

    formulae: frozenset[str] = frozenset()
    casks: frozenset[str] = frozenset()
    taps: frozenset[str] = frozenset()
    track_dependencies: bool = True

    @property
    def is_empty(self) -> bool:
        """True when no package of any kind is declared."""
        return not (self.formulae or self.casks or self.taps)


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """An auxiliary shell command.

    Attributes:
        name: Unique command name.
        template: Command line with ``$VAR`` / ``${VAR}`` placeholders.
        elevated: Run through the privileged execution path.
        run_first: Run sequentially before the concurrent batch.
        flagged: Only run when flagged commands are requested.
        required: Binaries that must be on PATH for the command to run.
    """

    name: str
    template: str
    elevated: bool = False
    run_first: bool = False
    flagged: bool = False
    required: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TargetModel:
    """Aggregate desired state.

    Attributes:
        preferences: Declared preference entries in declaration order.
        packages: Declared packages, or None if the config has no brew section.
        variables: Variables for command template substitution.
        commands: Declared commands in declaration order.
        locked: When True, mutating operations are refused.
        source_path: File the model was loaded from, if any.
    """

    preferences: tuple[PreferenceEntry, ...] = ()
    packages: PackageSpec | None = None
    variables: dict[str, str] = field(default_factory=dict)
    commands: tuple[CommandSpec, ...] = ()
    locked: bool = False
    source_path: Path | None = None

    def __post_init__(self) -> None:
        """Enforce uniqueness of preference identities and command names."""
        seen: set[tuple[str, str]] = set()
        for entry in self.preferences:
            if entry.ident in seen:
                msg = f"Duplicate preference {entry.domain} | {entry.key}"
                raise ValueError(msg)
            seen.add(entry.ident)

        names: set[str] = set()
        for command in self.commands:
            if command.name in names:
                msg = f"Duplicate command name: {command.name}"
                raise ValueError(msg)
            names.add(command.name)

    @property
    def domains(self) -> list[str]:
        """Declared domains in first-appearance order."""
        ordered: dict[str, None] = {}
        for entry in self.preferences:
            ordered.setdefault(entry.domain, None)
        return list(ordered)

    def get_command(self, name: str) -> CommandSpec | None:
        """Look up a command by name.

        Args:
            name: Command name.

        Returns:
            The matching CommandSpec, or None.
        """
        for command in self.commands:
            if command.name == name:
                return command
        return None
