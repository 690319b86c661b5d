"""Configuration file I/O.

This module loads the TOML configuration, validates it with Pydantic, and
turns it into the read-only :class:`~prefctl.models.target.TargetModel`
that the rest of the engine consumes. It also performs the small
rewrites the CLI needs (init, lock, unlock, package backup).
"""

from __future__ import annotations

import hashlib
import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from prefctl.core.errors import (
    ConfigError,
    ConfigExistsError,
    ConfigNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from prefctl.core.paths import get_config_path
from prefctl.models.config import ConfigDocument
from prefctl.models.target import CommandSpec, PackageSpec, PreferenceEntry, TargetModel
from prefctl.models.value import PrefValue

logger = logging.getLogger(__name__)

GLOBAL_DOMAIN = "NSGlobalDomain"

# Domains starting with one of these are already fully qualified.
_QUALIFIED_PREFIXES = ("com.", "org.", "net.", "io.", "app.", "dev.")


def effective_domain(domain: str, key: str) -> tuple[str, str]:
    """Turn a config domain and key into the real preference domain and key.

    Examples:
        ``("dock", "tilesize")`` -> ``("com.apple.dock", "tilesize")``
        ``("NSGlobalDomain", "KeyRepeat")`` -> unchanged
        ``("NSGlobalDomain.com.apple.keyboard", "fnState")``
        -> ``("NSGlobalDomain", "com.apple.keyboard.fnState")``
        ``("com.example.app", "Foo")`` -> unchanged

    Args:
        domain: Domain as written in the config (possibly dotted by nesting).
        key: Key as written in the config.

    Returns:
        Tuple of (effective domain, effective key).
    """
    if domain == GLOBAL_DOMAIN:
        return domain, key
    if domain.startswith(f"{GLOBAL_DOMAIN}."):
        rest = domain[len(GLOBAL_DOMAIN) + 1 :]
        return GLOBAL_DOMAIN, f"{rest}.{key}"
    if domain.startswith(_QUALIFIED_PREFIXES):
        return domain, key
    return f"com.apple.{domain}", key


def _flatten(prefix: str, table: dict[str, Any]) -> list[tuple[str, str, Any]]:
    """Flatten nested tables into (domain, key, value) triples.

    Nested tables extend the domain with a dot. Order follows the document.
    """
    flat: list[tuple[str, str, Any]] = []
    for key, value in table.items():
        if isinstance(value, dict):
            flat.extend(_flatten(f"{prefix}.{key}", value))
        else:
            flat.append((prefix, key, value))
    return flat


def collect_preferences(settings: dict[str, dict[str, Any]]) -> tuple[PreferenceEntry, ...]:
    """Build preference entries from the ``[set]`` section.

    Args:
        settings: Raw ``[set]`` section, domain to key/value table.

    Returns:
        Entries in declaration order with effective domains and keys.

    Raises:
        ConfigValidationError: If a value has an unsupported type or a
            ``(domain, key)`` pair is declared twice.
    """
    entries: list[PreferenceEntry] = []
    seen: dict[tuple[str, str], str] = {}

    for domain, table in settings.items():
        for raw_domain, raw_key, raw_value in _flatten(domain, table):
            eff_domain, eff_key = effective_domain(raw_domain, raw_key)
            try:
                value = PrefValue.from_python(raw_value)
            except TypeError as e:
                msg = f"Unsupported value for {eff_domain} | {eff_key}: {e}"
                raise ConfigValidationError(msg) from e

            ident = (eff_domain, eff_key)
            if ident in seen:
                msg = (
                    f"Preference {eff_domain} | {eff_key} is declared twice "
                    f"(in [set.{seen[ident]}] and [set.{raw_domain}])"
                )
                raise ConfigValidationError(msg)
            seen[ident] = raw_domain
            entries.append(PreferenceEntry(domain=eff_domain, key=eff_key, value=value))

    return tuple(entries)


def document_to_target(document: ConfigDocument, path: Path | None = None) -> TargetModel:
    """Convert a validated config document into a TargetModel.

    Args:
        document: Validated configuration document.
        path: File the document was read from, if any.

    Returns:
        The target model for this invocation.

    Raises:
        ConfigValidationError: If preference values are invalid.
    """
    packages: PackageSpec | None = None
    if document.brew is not None:
        packages = PackageSpec(
            formulae=frozenset(document.brew.formulae),
            casks=frozenset(document.brew.casks),
            taps=frozenset(document.brew.taps),
            track_dependencies=not document.brew.no_deps,
        )

    commands = tuple(
        CommandSpec(
            name=name,
            template=entry.run,
            elevated=entry.sudo,
            run_first=entry.ensure_first,
            flagged=entry.flag,
            required=tuple(entry.required),
        )
        for name, entry in document.commands.items()
    )

    return TargetModel(
        preferences=collect_preferences(document.settings),
        packages=packages,
        variables=dict(document.vars),
        commands=commands,
        locked=document.lock,
        source_path=path,
    )


def _read_raw(path: Path) -> dict[str, Any]:
    """Read and parse a TOML file into a plain dictionary."""
    if not path.exists():
        raise ConfigNotFoundError(f"Config not found: {path}")

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e


def load_document(path: Path | None = None) -> ConfigDocument:
    """Load and validate a configuration document.

    Args:
        path: Path to the config file. If None, uses the default lookup.

    Returns:
        Validated ConfigDocument.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()
    data = _read_raw(config_path)

    try:
        return ConfigDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def load_config(path: Path | None = None) -> TargetModel:
    """Load the configuration file into a TargetModel.

    Args:
        path: Path to the config file. If None, uses the default lookup.

    Returns:
        The target model.

    Raises:
        ConfigError: If the file is missing, malformed, or invalid.
    """
    config_path = path or get_config_path()
    document = load_document(config_path)
    target = document_to_target(document, config_path)
    logger.debug(
        "Loaded config %s: %d preference(s), %d command(s), locked=%s",
        config_path,
        len(target.preferences),
        len(target.commands),
        target.locked,
    )
    return target


def config_exists(path: Path | None = None) -> bool:
    """Check if a config file exists.

    Args:
        path: Path to check. If None, uses the default lookup.
    """
    return (path or get_config_path()).exists()


def _write_raw(data: dict[str, Any], path: Path) -> Path:
    """Write a dictionary as TOML atomically.

    Raises:
        ConfigError: If the file cannot be written.
    """
    return _write_atomic(tomli_w.dumps(data), path)


def _write_atomic(text: str, path: Path) -> Path:
    """Write TOML text to a temporary file, then move it into place.

    The temporary file is created next to the target and removed on
    failure.

    Raises:
        ConfigError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(text)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return path


def set_lock(locked: bool, path: Path | None = None) -> Path:
    """Set or clear the ``lock`` flag in the config file.

    Other content is preserved as parsed; comments are not.

    Args:
        locked: New lock state.
        path: Path to the config file. If None, uses the default lookup.

    Returns:
        Path of the rewritten file.

    Raises:
        ConfigError: If the file cannot be read or is already in that state.
    """
    config_path = path or get_config_path()
    data = _read_raw(config_path)

    if bool(data.get("lock", False)) == locked:
        state = "locked" if locked else "unlocked"
        raise ConfigError(f"Config is already {state}.")

    if locked:
        data = {"lock": True, **{k: v for k, v in data.items() if k != "lock"}}
    else:
        data.pop("lock", None)

    logger.info("Setting lock=%s in %s", locked, config_path)
    return _write_raw(data, config_path)


def update_brew_section(
    formulae: list[str],
    casks: list[str],
    taps: list[str],
    no_deps: bool,
    path: Path | None = None,
) -> Path:
    """Replace the ``[brew]`` section, creating the file if needed.

    Args:
        formulae: Formula names to record.
        casks: Cask names to record.
        taps: Tap names to record.
        no_deps: Whether dependency tracking is disabled.
        path: Path to the config file. If None, uses the default lookup.

    Returns:
        Path of the written file.

    Raises:
        ConfigError: If the existing file is malformed or cannot be written.
    """
    config_path = path or get_config_path()
    data = _read_raw(config_path) if config_path.exists() else {}

    brew: dict[str, Any] = {
        "formulae": sorted(formulae),
        "casks": sorted(casks),
        "taps": sorted(taps),
    }
    if no_deps:
        brew["no_deps"] = True
    data["brew"] = brew

    try:
        ConfigDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e

    return _write_raw(data, config_path)


STARTER_CONFIG = """\
# prefctl configuration
#
# Applying is refused while the file is locked. Review the values below,
# then remove this line or run 'prefctl config unlock'.
lock = true

# Preferences: [set.<domain>] holds keys for one defaults domain.
# Short names are expanded, so "dock" means "com.apple.dock".
[set.dock]
tilesize = 50
autohide = true
show-recents = false

[set.finder]
ShowPathbar = true
AppleShowAllFiles = true

[set.NSGlobalDomain]
KeyRepeat = 2
InitialKeyRepeat = 15

# Variables for commands, referenced as $name or ${name}.
[vars]
hostname = "my-mac"

# Commands run after preferences are written. ensure_first commands run
# one by one before the rest; flag marks commands run only with --flagged.
[commands.hostname]
run = "scutil --set ComputerName $hostname"
sudo = true
flag = true

# Homebrew packages, installed by 'prefctl packages install' or
# 'prefctl apply --with-packages'.
[brew]
formulae = ["git"]
casks = []
taps = []
"""


def write_starter_config(path: Path | None = None, overwrite: bool = False) -> Path:
    """Write a commented starter config.

    Args:
        path: Target file. If None, uses the default lookup.
        overwrite: Replace an existing file.

    Returns:
        Path of the written file.

    Raises:
        ConfigExistsError: If the file exists and overwrite is False.
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    if config_path.exists() and not overwrite:
        raise ConfigExistsError(f"Config already exists: {config_path}")
    logger.info("Writing starter config to %s", config_path)
    return _write_atomic(STARTER_CONFIG, config_path)


def delete_config(path: Path | None = None) -> Path:
    """Delete the config file.

    Raises:
        ConfigNotFoundError: If there is no config file.
        ConfigError: If the file cannot be removed.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")
    try:
        config_path.unlink()
    except OSError as e:
        raise ConfigError(f"Failed to delete config: {e}") from e
    return config_path


def config_digest(path: Path) -> str:
    """Compute the SHA-256 digest of a config file.

    Raises:
        ConfigError: If the file cannot be read.
    """
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e
