"""Read-only lookups against the package index and the local install."""
from __future__ import annotations

import json
import logging
import os
import shutil
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from importlib import metadata

from packaging.version import InvalidVersion, Version

LOGGER = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://pypi.org/pypi"
SKIP_REGISTRY_ENV = "RPC_SKIP_REGISTRY"
_TRUTHY = {"1", "true", "yes", "on"}


class RegistryError(RuntimeError):
    """Raised when the latest published version cannot be determined."""


class RegistryClient:
    """Query the PyPI JSON API for published releases."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = 10.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Configure the index base URL and request timeout."""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._env = env

    def latest_version(self, package: str) -> str:
        """Return the newest release of *package* published on the index."""
        env = os.environ if self._env is None else self._env
        if env.get(SKIP_REGISTRY_ENV, "").strip().lower() in _TRUTHY:
            raise RegistryError(f"Registry lookups disabled via {SKIP_REGISTRY_ENV}.")

        url = f"{self.base_url}/{urllib.parse.quote(package, safe='')}/json"
        payload = self._fetch_json(url)
        info = payload.get("info") if isinstance(payload, Mapping) else None
        raw_version = info.get("version") if isinstance(info, Mapping) else None
        if not isinstance(raw_version, str) or not raw_version.strip():
            raise RegistryError("Registry response did not include a version.")
        try:
            return str(Version(raw_version.strip()))
        except InvalidVersion as exc:
            raise RegistryError(f"Registry returned an invalid version: {raw_version!r}") from exc

    def _fetch_json(self, url: str) -> object:
        """Fetch and decode *url* (isolated for testing)."""
        request = urllib.request.Request(url, headers={"Accept": "application/json"})
        LOGGER.debug("Querying registry: %s", url)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:  # noqa: S310
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise RegistryError(f"Registry request failed: HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            raise RegistryError(f"Registry unreachable: {exc.reason}") from exc
        except OSError as exc:
            raise RegistryError(f"Registry unreachable: {exc}") from exc
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise RegistryError(f"Registry returned invalid JSON: {exc}") from exc


@dataclass(frozen=True, slots=True)
class InstallStatus:
    """Where (and whether) the tool is installed."""

    distribution: str
    version: str | None
    command: str
    command_path: str | None

    @property
    def distribution_found(self) -> bool:
        """Return ``True`` when package metadata is present."""
        return self.version is not None

    @property
    def is_global(self) -> bool:
        """Return ``True`` when the package is installed and its command is on PATH."""
        return self.distribution_found and self.command_path is not None


def inspect_install(distribution: str, command: str) -> InstallStatus:
    """Return install details for *distribution* and its console *command*."""
    try:
        version: str | None = metadata.version(distribution)
    except metadata.PackageNotFoundError:
        version = None
    return InstallStatus(
        distribution=distribution,
        version=version,
        command=command,
        command_path=shutil.which(command),
    )


__all__ = [
    "DEFAULT_REGISTRY_URL",
    "InstallStatus",
    "RegistryClient",
    "RegistryError",
    "SKIP_REGISTRY_ENV",
    "inspect_install",
]
