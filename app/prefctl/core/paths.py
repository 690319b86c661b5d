"""XDG-compliant path management for prefctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage.

XDG defaults:
- Config: ~/.config/prefctl/config.toml (or ~/.config/prefctl.toml)
- State: ~/.local/state/prefctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "prefctl"

CONFIG_FILENAME = "config.toml"
SNAPSHOT_FILENAME = "snapshot.json"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/prefctl/ (or XDG_CONFIG_HOME/prefctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data is the snapshot of pre-apply values, which must persist
    between runs but is not configuration.

    Returns:
        Path to ~/.local/state/prefctl/ (or XDG_STATE_HOME/prefctl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def config_path_candidates() -> list[Path]:
    """List the places a configuration file is looked for, in priority order.

    Returns:
        Candidate paths; the first one is also where a new file is created.
    """
    candidates: list[Path] = []
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        candidates.append(Path(xdg) / APP_NAME / CONFIG_FILENAME)
    candidates.append(Path.home() / ".config" / APP_NAME / CONFIG_FILENAME)
    if xdg:
        candidates.append(Path(xdg) / f"{APP_NAME}.toml")
    candidates.append(Path.home() / ".config" / f"{APP_NAME}.toml")
    return candidates


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns the first candidate that exists, or the preferred location
    when none does.

    Returns:
        Path to the configuration file.
    """
    candidates = config_path_candidates()
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def get_snapshot_path() -> Path:
    """Get the snapshot file path.

    Returns:
        Path to ~/.local/state/prefctl/snapshot.json.
    """
    return get_state_dir() / SNAPSHOT_FILENAME


def get_user_theme_path() -> Path:
    """Get the user theme configuration path.

    Returns:
        Path to ~/.config/prefctl/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")
