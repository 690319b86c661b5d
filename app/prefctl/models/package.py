"""Package models for Homebrew state.

This module defines the kinds of Homebrew items prefctl tracks.
"""

from enum import Enum


class PackageKind(str, Enum):
    """Kind of Homebrew item.

    Attributes:
        TAP: A third-party repository (``brew tap``).
        FORMULA: A command-line package.
        CASK: A macOS application.
    """

    TAP = "tap"
    FORMULA = "formula"
    CASK = "cask"

    @property
    def plural(self) -> str:
        """Human-readable plural label."""
        return {"tap": "taps", "formula": "formulae", "cask": "casks"}[self.value]


# Install order: taps make their formulae and casks resolvable.
INSTALL_ORDER: tuple[PackageKind, ...] = (
    PackageKind.TAP,
    PackageKind.FORMULA,
    PackageKind.CASK,
)
