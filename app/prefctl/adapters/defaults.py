"""Preference store backed by the macOS ``defaults`` tool.

Reads export a whole domain as an XML property list (parsed with
plistlib) and are cached per domain until that domain is written.
Writes use typed ``defaults write`` flags, or an XML fragment for lists.
"""

import logging
import plistlib
import subprocess
from typing import Any
from xml.sax.saxutils import escape

from prefctl.adapters.base import PreferenceStore
from prefctl.core.config import GLOBAL_DOMAIN
from prefctl.core.errors import AdapterError, UnsupportedValueError
from prefctl.models.value import PrefValue, ValueKind
from prefctl.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


def plist_to_value(obj: Any) -> PrefValue:
    """Convert a plistlib object into a PrefValue.

    Raises:
        TypeError: For dictionaries, data, dates and other unsupported types.
    """
    if isinstance(obj, dict):
        msg = "dictionary values are not supported"
        raise TypeError(msg)
    return PrefValue.from_python(obj)


def value_to_xml(value: PrefValue) -> str:
    """Render a PrefValue as an XML property list fragment.

    Examples:
        ``PrefValue.integer(3)`` -> ``<integer>3</integer>``
    """
    if value.kind == ValueKind.BOOLEAN:
        return "<true/>" if value.data else "<false/>"
    if value.kind == ValueKind.INTEGER:
        return f"<integer>{value.data}</integer>"
    if value.kind == ValueKind.FLOAT:
        return f"<real>{value.data!r}</real>"
    if value.kind == ValueKind.STRING:
        return f"<string>{escape(str(value.data))}</string>"
    items = "".join(value_to_xml(item) for item in value.data)  # type: ignore[union-attr]
    return f"<array>{items}</array>"


def write_args(value: PrefValue) -> list[str]:
    """Build the typed ``defaults write`` arguments for a value."""
    if value.kind == ValueKind.BOOLEAN:
        return ["-bool", "true" if value.data else "false"]
    if value.kind == ValueKind.INTEGER:
        return ["-int", str(value.data)]
    if value.kind == ValueKind.FLOAT:
        return ["-float", repr(value.data)]
    if value.kind == ValueKind.STRING:
        return ["-string", str(value.data)]
    return [value_to_xml(value)]


class DefaultsPreferenceStore(PreferenceStore):
    """Preference store using ``/usr/bin/defaults``.

    Attributes:
        timeout: Seconds to wait for each ``defaults`` invocation.
    """

    _DEFAULTS_TIMEOUT: float = 30.0

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout if timeout is not None else self._DEFAULTS_TIMEOUT
        self._domain_cache: dict[str, dict[str, Any]] = {}
        self._known_domains: set[str] | None = None

    def is_available(self) -> bool:
        """Check if the defaults tool is available."""
        return command_exists("defaults")

    def _run(self, args: list[str], *, domain: str, key: str | None = None) -> CommandResult:
        """Run ``defaults`` and wrap spawn failures in AdapterError."""
        try:
            return run_command(["defaults", *args], timeout=self.timeout)
        except (FileNotFoundError, subprocess.TimeoutExpired, OSError) as e:
            msg = f"Failed to run defaults for {domain}: {e}"
            raise AdapterError(msg, domain=domain, key=key) from e

    def _export(self, domain: str) -> dict[str, Any]:
        """Export a domain as a dictionary, using the cache when possible."""
        if domain in self._domain_cache:
            return self._domain_cache[domain]

        result = self._run(["export", domain, "-"], domain=domain)
        if not result.success:
            msg = f"defaults export {domain} failed: {result.error_text}"
            raise AdapterError(msg, domain=domain)

        text = result.stdout.strip()
        if not text:
            data: dict[str, Any] = {}
        else:
            try:
                parsed = plistlib.loads(text.encode("utf-8"))
            except plistlib.InvalidFileException as e:
                msg = f"Could not parse exported plist for {domain}: {e}"
                raise AdapterError(msg, domain=domain) from e
            data = parsed if isinstance(parsed, dict) else {}

        self._domain_cache[domain] = data
        return data

    def invalidate(self, domain: str | None = None) -> None:
        """Drop cached reads for one domain, or all domains."""
        if domain is None:
            self._domain_cache.clear()
        else:
            self._domain_cache.pop(domain, None)

    def get(self, domain: str, key: str) -> PrefValue | None:
        """Read a value from the exported domain.

        Raises:
            UnsupportedValueError: If the key holds a dictionary, data or date.
        """
        data = self._export(domain)
        if key not in data:
            return None
        try:
            return plist_to_value(data[key])
        except TypeError as e:
            msg = f"{domain} | {key} holds a value prefctl cannot represent ({e})"
            raise UnsupportedValueError(msg, domain=domain, key=key) from e

    def set(self, domain: str, key: str, value: PrefValue) -> None:
        """Write a value with ``defaults write``."""
        logger.info("defaults write %s %s %s", domain, key, value.display())
        result = self._run(["write", domain, key, *write_args(value)], domain=domain, key=key)
        self.invalidate(domain)
        if not result.success:
            msg = f"Failed to write {domain} | {key}: {result.error_text}"
            raise AdapterError(msg, domain=domain, key=key)

    def unset(self, domain: str, key: str) -> None:
        """Delete a key with ``defaults delete``."""
        logger.info("defaults delete %s %s", domain, key)
        result = self._run(["delete", domain, key], domain=domain, key=key)
        self.invalidate(domain)
        if not result.success:
            if "does not exist" in result.stderr:
                logger.debug("Key %s | %s was already unset", domain, key)
                return
            msg = f"Failed to delete {domain} | {key}: {result.error_text}"
            raise AdapterError(msg, domain=domain, key=key)

    def domain_exists(self, domain: str) -> bool:
        """Check the domain against ``defaults domains``."""
        if domain == GLOBAL_DOMAIN:
            return True
        if self._known_domains is None:
            result = self._run(["domains"], domain=domain)
            if not result.success:
                msg = f"defaults domains failed: {result.error_text}"
                raise AdapterError(msg, domain=domain)
            self._known_domains = {
                name.strip() for name in result.stdout.split(",") if name.strip()
            }
        return domain in self._known_domains

    def keys(self, domain: str) -> list[str]:
        """List keys from the exported domain."""
        return list(self._export(domain))
