"""Console colors for prefctl.

Colors default to the values on :class:`ThemeColors`; a user file at
``~/.config/prefctl/theme.toml`` may override any of them under a
``[colors]`` table. A broken file never stops the CLI: it is logged and
the defaults are used.
"""

import logging
import string
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from prefctl.core.paths import get_user_theme_path

logger = logging.getLogger(__name__)

# Styles rendered bold on top of their color.
_BOLD_STYLES = frozenset({"error", "domain"})


class ThemeColors(BaseModel):
    """Hex colors (#RGB or #RRGGBB) for every named console style."""

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Plan and drift rows
    added: str = "#c1ff62"
    removed: str = "#f53263"
    changed: str = "#0e8ac8"

    domain: str = "#69B9A1"
    value: str = "#faf870"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, v: object) -> str:
        if not isinstance(v, str):
            raise ValueError("color must be a string")
        color = v.strip()
        if not color.startswith("#"):
            msg = f"color {color!r} must start with '#'"
            raise ValueError(msg)
        digits = color[1:]
        if len(digits) not in (3, 6):
            msg = f"color {color!r} must be #RGB or #RRGGBB"
            raise ValueError(msg)
        if not set(digits) <= set(string.hexdigits):
            msg = f"invalid hex color {color!r}"
            raise ValueError(msg)
        return color


def read_user_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Returns:
        Mapping of style name to color (non-string values dropped), or
        None if the file is missing or unreadable.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return None

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return None
    return {name: color for name, color in colors.items() if isinstance(color, str)}


def load_theme(path: Path | None = None) -> ThemeColors:
    """Load colors, applying the user's overrides over the defaults."""
    theme_path = path or get_user_theme_path()
    overrides = read_user_colors(theme_path)
    if not overrides:
        return ThemeColors()
    try:
        return ThemeColors(**overrides)
    except ValidationError as e:
        logger.warning("Invalid colors in %s, using defaults: %s", theme_path, e)
        return ThemeColors()


def build_theme(colors: ThemeColors) -> Theme:
    """Turn colors into the Rich styles the tables and messages use."""
    styles = {
        name: f"bold {color}" if name in _BOLD_STYLES else color
        for name, color in colors.model_dump().items()
    }
    styles["bold_header"] = f"bold {colors.header}"
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = build_theme(load_theme())
    return _cached_theme
