"""prefctl - Declarative macOS preference management.

Declare preference values, Homebrew packages and auxiliary shell commands
in one TOML file, reconcile the machine toward it, and revert the change
later from a snapshot.
"""

__version__ = "0.4.0"
