"""Loader for the ``scripts`` table of a project's ``package.json``."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = "package.json"


class ManifestError(RuntimeError):
    """Base class for manifest lookup failures."""


class ManifestNotFound(ManifestError):
    """Raised when the working directory has no manifest file."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"No {path.name} found in {path.parent}.")
        self.path = path


class ManifestInvalid(ManifestError):
    """Raised when the manifest exists but yields no usable scripts."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path.name} is not usable: {reason}")
        self.path = path
        self.reason = reason


class ScriptNotFound(ManifestError):
    """Raised when a requested script is not declared in the manifest."""

    def __init__(self, name: str, scripts: Mapping[str, str]) -> None:
        super().__init__(f"Script '{name}' not found.")
        self.name = name
        self.scripts = dict(scripts)

    @property
    def available(self) -> tuple[str, ...]:
        """Return the declared script names in manifest order."""
        return tuple(self.scripts)


@dataclass(frozen=True)
class ScriptManifest:
    """Scripts declared by a manifest, in declaration order."""

    path: Path
    scripts: Mapping[str, str]
    package_name: str | None = None
    extra: Mapping[str, object] = field(default_factory=dict, repr=False)

    def names(self) -> tuple[str, ...]:
        """Return script names in declaration order."""
        return tuple(self.scripts)

    def __contains__(self, name: object) -> bool:
        return name in self.scripts

    def __len__(self) -> int:
        return len(self.scripts)

    def require(self, name: str) -> str:
        """Return the command for *name* or raise :class:`ScriptNotFound`."""
        try:
            return self.scripts[name]
        except KeyError:
            raise ScriptNotFound(name, self.scripts) from None


def load_manifest(
    directory: str | Path | None = None,
    *,
    filename: str = DEFAULT_MANIFEST_NAME,
) -> ScriptManifest:
    """Load scripts from *filename* inside *directory* (default: cwd).

    Only *directory* itself is searched; parent directories are never
    consulted.
    """
    root = Path.cwd() if directory is None else Path(directory)
    path = root / filename
    if not path.is_file():
        raise ManifestNotFound(path)

    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestInvalid(path, f"cannot be read ({exc.strerror or exc})") from exc
    except UnicodeDecodeError as exc:
        raise ManifestInvalid(path, "not valid UTF-8") from exc

    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ManifestInvalid(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    if not isinstance(payload, Mapping):
        raise ManifestInvalid(path, "top-level value must be a JSON object")

    scripts = _extract_scripts(path, payload.get("scripts"))
    name_raw = payload.get("name")
    package_name = name_raw if isinstance(name_raw, str) and name_raw else None

    LOGGER.debug("Loaded %d script(s) from %s", len(scripts), path)
    return ScriptManifest(
        path=path,
        scripts=scripts,
        package_name=package_name,
        extra={key: value for key, value in payload.items() if key != "scripts"},
    )


def _extract_scripts(path: Path, raw: object) -> dict[str, str]:
    if raw is None:
        raise ManifestInvalid(path, "no scripts defined")
    if not isinstance(raw, Mapping):
        raise ManifestInvalid(path, "'scripts' must be an object")
    if not raw:
        raise ManifestInvalid(path, "no scripts defined")

    scripts: dict[str, str] = {}
    for name, command in raw.items():
        if not isinstance(command, str):
            raise ManifestInvalid(path, f"script '{name}' must map to a command string")
        scripts[str(name)] = command
    return scripts


__all__ = [
    "DEFAULT_MANIFEST_NAME",
    "ManifestError",
    "ManifestInvalid",
    "ManifestNotFound",
    "ScriptManifest",
    "ScriptNotFound",
    "load_manifest",
]
