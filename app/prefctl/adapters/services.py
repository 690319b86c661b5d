"""Service restarts after preference changes.

Most preference domains are only re-read when their owning process
starts, so the Dock, Finder and menu bar are killed and relaunched by
launchd after an apply.
"""

import logging
import subprocess

from prefctl.adapters.base import ServiceNotifier
from prefctl.utils.shell import run_command

logger = logging.getLogger(__name__)

# Domains whose changes are picked up by a specific process.
SERVICE_FOR_DOMAIN: dict[str, str] = {
    "com.apple.dock": "Dock",
    "com.apple.finder": "Finder",
}

DEFAULT_SERVICE = "SystemUIServer"


def service_for(domain: str) -> str:
    """Name the process that owns a preference domain.

    Examples:
        ``service_for("com.apple.dock")`` -> ``"Dock"``
        ``service_for("NSGlobalDomain")`` -> ``"SystemUIServer"``
    """
    return SERVICE_FOR_DOMAIN.get(domain, DEFAULT_SERVICE)


class KillallNotifier(ServiceNotifier):
    """Restart services with ``killall``, each at most once per instance.

    Attributes:
        dry_run: If True, only log the restarts.
    """

    _KILLALL_TIMEOUT: float = 10.0

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        self._restarted: set[str] = set()

    @property
    def restarted(self) -> list[str]:
        """Services restarted so far, sorted."""
        return sorted(self._restarted)

    def restart(self, domain: str) -> str | None:
        """Restart the service owning a domain unless already done."""
        service = service_for(domain)
        if service in self._restarted:
            return None
        self._restarted.add(service)

        if self.dry_run:
            logger.info("Would restart %s for %s", service, domain)
            return service

        logger.info("Restarting %s for %s", service, domain)
        try:
            result = run_command(["killall", service], timeout=self._KILLALL_TIMEOUT)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            logger.warning("Could not restart %s: %s", service, e)
            return None
        if not result.success:
            # Not running is fine; launchd starts it with the new settings.
            logger.debug("killall %s: %s", service, result.stderr.strip())
        return service
