"""Configuration loader for rpcmd.

Values are merged from, in order of increasing precedence:

1. Built-in defaults.
2. ``~/.config/rpc/config.yml`` (or an override path).
3. Environment variables prefixed with ``RPC_``.
4. Explicit overrides supplied programmatically (reserved for CLI flags).

Environment values are coerced via PyYAML's ``safe_load`` so that booleans and
numbers are parsed naturally::

    export RPC_MIN_NODE_VERSION=20.0.0
    export RPC_AUTO_SELECT_SINGLE=false

Only variables naming a known key are read; other ``RPC_*`` variables are
left alone. ``issues_url`` falls back to the ``Issues`` project URL of the
installed distribution.

The resulting configuration is exposed as an immutable dataclass.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path

import yaml

from . import DISTRIBUTION_NAME
from .manifest import DEFAULT_MANIFEST_NAME
from .providers.registry import DEFAULT_REGISTRY_URL, SKIP_REGISTRY_ENV

ENV_PREFIX = "RPC_"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
RESERVED_ENV_KEYS = {
    CONFIG_ENV_VAR,
    SKIP_REGISTRY_ENV,
}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
# Keys whose environment values are taken verbatim rather than YAML-coerced.
STRING_KEYS = {"min_python_version", "min_node_version", "package_name", "command_name"}
# Project-URL labels that point at the issue tracker.
ISSUES_URL_LABELS = {"issues", "bug tracker", "tracker"}

LOGGER = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when configuration parsing fails."""


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration values for rpcmd."""

    config_file: Path
    package_name: str
    command_name: str
    manifest_name: str
    min_python_version: str
    min_node_version: str
    registry_url: str
    registry_timeout: float
    issues_url: str | None
    auto_select_single: bool
    logs_dir: Path | None
    log_level: str

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation of the config."""
        return {
            "config_file": str(self.config_file),
            "package_name": self.package_name,
            "command_name": self.command_name,
            "manifest_name": self.manifest_name,
            "min_python_version": self.min_python_version,
            "min_node_version": self.min_node_version,
            "registry_url": self.registry_url,
            "registry_timeout": self.registry_timeout,
            "issues_url": self.issues_url,
            "auto_select_single": self.auto_select_single,
            "logs_dir": str(self.logs_dir) if self.logs_dir else None,
            "log_level": self.log_level,
        }


DEFAULTS: dict[str, object] = {
    "config_file": "~/.config/rpc/config.yml",
    "package_name": DISTRIBUTION_NAME,
    "command_name": "rpc",
    "manifest_name": DEFAULT_MANIFEST_NAME,
    "min_python_version": "3.11",
    "min_node_version": "18.0.0",
    "registry_url": DEFAULT_REGISTRY_URL,
    "registry_timeout": 10.0,
    "issues_url": None,
    "auto_select_single": True,
    "logs_dir": None,
    "log_level": "WARNING",
}

ALLOWED_TOP_LEVEL_KEYS = set(DEFAULTS.keys())


def load_config(
    config_file: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> AppConfig:
    """Load and merge configuration sources into an :class:`AppConfig`."""
    merged: dict[str, object] = dict(DEFAULTS)
    resolved_env = dict(os.environ if env is None else env)

    config_default = _expect_str(merged["config_file"], "config_file")
    config_path = _determine_config_path(config_default, config_file, resolved_env)

    file_values = _load_yaml_file(config_path)
    if file_values:
        merged.update(file_values)

    env_values = _build_env_overrides(resolved_env)
    if env_values:
        merged.update(env_values)

    if overrides:
        merged.update(overrides)

    merged["config_file"] = str(config_path)
    if merged.get("issues_url") is None:
        merged["issues_url"] = _default_issues_url()

    _validate_structure(merged)

    return _build_app_config(merged)


def _determine_config_path(
    default_path: str,
    cli_override: str | os.PathLike[str] | None,
    env: Mapping[str, str],
) -> Path:
    if cli_override:
        return _to_path(os.fspath(cli_override))
    if CONFIG_ENV_VAR in env:
        return _to_path(env[CONFIG_ENV_VAR])
    return _to_path(default_path)


def _load_yaml_file(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
    return _as_dict(data, f"file:{path}")


def _validate_structure(raw: Mapping[str, object]) -> None:
    unknown_keys = set(raw.keys()) - ALLOWED_TOP_LEVEL_KEYS
    if unknown_keys:
        joined = ", ".join(sorted(unknown_keys))
        raise ConfigError(f"Unknown configuration keys: {joined}.")

    level = raw.get("log_level")
    if not isinstance(level, str) or level.upper() not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ConfigError(f"log_level must be one of {allowed}. Got {level!r}.")


def _build_app_config(raw: Mapping[str, object]) -> AppConfig:
    logs_dir_raw = raw.get("logs_dir")
    issues_raw = raw.get("issues_url")
    return AppConfig(
        config_file=_to_path(raw["config_file"]),
        package_name=_expect_non_empty_str(raw.get("package_name"), "package_name"),
        command_name=_expect_non_empty_str(raw.get("command_name"), "command_name"),
        manifest_name=_expect_non_empty_str(raw.get("manifest_name"), "manifest_name"),
        min_python_version=_expect_version(raw.get("min_python_version"), "min_python_version"),
        min_node_version=_expect_version(raw.get("min_node_version"), "min_node_version"),
        registry_url=_expect_non_empty_str(raw.get("registry_url"), "registry_url"),
        registry_timeout=_expect_positive_float(
            raw.get("registry_timeout"), "registry_timeout", default=10.0
        ),
        issues_url=_expect_non_empty_str(issues_raw, "issues_url") if issues_raw else None,
        auto_select_single=_expect_bool(raw.get("auto_select_single"), "auto_select_single"),
        logs_dir=_to_path(logs_dir_raw) if logs_dir_raw else None,
        log_level=str(raw.get("log_level")).upper(),
    )


def _build_env_overrides(env: Mapping[str, str]) -> dict[str, object]:
    overrides: MutableMapping[str, object] = {}
    for key, value in env.items():
        if key in RESERVED_ENV_KEYS:
            continue
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX) :].lower()
        if not suffix:
            continue
        if suffix not in ALLOWED_TOP_LEVEL_KEYS:
            LOGGER.debug("Ignoring unrelated environment variable %s", key)
            continue
        overrides[suffix] = value.strip() if suffix in STRING_KEYS else _coerce_value(value)
    return dict(overrides)


def _default_issues_url() -> str | None:
    try:
        project_urls = metadata.metadata(DISTRIBUTION_NAME).get_all("Project-URL") or []
    except metadata.PackageNotFoundError:
        return None
    for entry in project_urls:
        label, _, url = entry.partition(",")
        if label.strip().lower() in ISSUES_URL_LABELS and url.strip():
            return url.strip()
    return None


def _coerce_value(raw: str) -> object:
    raw = raw.strip()
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:  # pragma: no cover - treat as string if parsing fails
        return raw
    return parsed


def _to_path(value: object) -> Path:
    if value is None:
        raise ConfigError("Expected a filesystem path, received None.")
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise ConfigError(f"Cannot convert value {value!r} to Path.")


def _expect_str(value: object, key: str) -> str:
    if isinstance(value, str):
        return value
    raise ConfigError(f"Expected {key} to resolve to a string. Got {value!r}.")


def _expect_non_empty_str(value: object, key: str) -> str:
    text = _expect_str(value, key).strip()
    if not text:
        raise ConfigError(f"{key} must be a non-empty string.")
    return text


def _expect_version(value: object, key: str) -> str:
    # YAML reads ``3.10`` as the float 3.1, so numbers are rejected outright.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        raise ConfigError(f"{key} must be quoted as a string (e.g. \"{value}\").")
    text = _expect_non_empty_str(value, key).lstrip("vV")
    parts = text.split(".")
    if not all(part.isdigit() for part in parts):
        raise ConfigError(f"{key} must be a dotted numeric version. Got {value!r}.")
    return text


def _expect_bool(value: object, label: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Expected {label} to be a boolean. Got {value!r}.")


def _expect_positive_float(
    value: object | None,
    label: str,
    *,
    default: float,
) -> float:
    if value is None:
        return float(default)
    if isinstance(value, bool):
        raise ConfigError(f"Expected {label} to be a number. Got boolean {value!r}.")
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value)
        except ValueError as exc:
            raise ConfigError(f"Invalid number for {label}: {value!r}.") from exc
    else:
        raise ConfigError(
            f"Expected {label} to be numeric. Got {type(value).__name__}."
        )
    if numeric <= 0:
        raise ConfigError(f"{label} must be greater than zero. Got {numeric}.")
    return numeric


def _as_dict(value: object | None, label: str) -> dict[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Expected {label} to be a mapping. Got {type(value).__name__}.")
    result: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ConfigError(f"Mapping {label} must use string keys. Got {key!r}.")
        result[key] = item
    return result


__all__ = [
    "AppConfig",
    "ConfigError",
    "DEFAULTS",
    "load_config",
]
