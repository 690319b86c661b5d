"""Mac App Store listing through the ``mas`` CLI.

Only listing is supported; App Store apps are not part of the
declarative state.
"""

import logging
import re
import subprocess
from dataclasses import dataclass

from prefctl.core.errors import AdapterError
from prefctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# "497799835  Xcode  (15.0)"; older releases omit the version.
_LIST_LINE = re.compile(r"^(?P<id>\d+)\s+(?P<name>.+?)(?:\s+\((?P<version>[^)]*)\))?$")


@dataclass(frozen=True, slots=True)
class AppStoreApp:
    """An app installed from the App Store.

    Attributes:
        app_id: Numeric App Store identifier.
        name: Display name.
        version: Installed version, if mas reported one.
    """

    app_id: str
    name: str
    version: str | None = None


def parse_mas_list(output: str) -> list[AppStoreApp]:
    """Parse ``mas list`` output, skipping lines that do not match."""
    apps: list[AppStoreApp] = []
    for line in output.splitlines():
        match = _LIST_LINE.match(line.strip())
        if match is None:
            if line.strip():
                logger.debug("Skipping unparsable mas line: %r", line)
            continue
        apps.append(AppStoreApp(match["id"], match["name"].strip(), match["version"]))
    return apps


class MasAppStore:
    """Reads installed App Store apps with ``mas list``."""

    _TIMEOUT: float = 60.0

    def is_available(self) -> bool:
        """Check if mas is on PATH."""
        return command_exists("mas")

    def list_apps(self) -> list[AppStoreApp]:
        """List installed App Store apps sorted by name.

        Raises:
            AdapterError: If mas is missing or fails.
        """
        if not self.is_available():
            msg = "mas was not found on PATH; install it with 'brew install mas'"
            raise AdapterError(msg)

        try:
            result = run_command(["mas", "list"], timeout=self._TIMEOUT)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            raise AdapterError(f"Failed to run mas list: {e}") from e
        if not result.success:
            raise AdapterError(f"mas list failed: {result.error_text}")

        return sorted(parse_mas_list(result.stdout), key=lambda app: app.name.lower())
