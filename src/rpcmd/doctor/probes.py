"""Probe registration entry point for the doctor command."""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

from ..providers.node import NodeRuntimeError
from ..providers.package_manager import detect_package_manager
from ..providers.registry import RegistryError
from ..versioning import compare_versions, meets_minimum
from .models import (
    DiagnosticUnavailable,
    ProbeCategory,
    ProbeContext,
    ProbeDefinition,
    ProbeResult,
    ProbeStatus,
    VersionInfo,
)

PYTHON_DOWNLOAD_URL = "https://www.python.org/downloads/"
NODE_DOWNLOAD_URL = "https://nodejs.org/"


def collect_probes() -> Sequence[ProbeDefinition]:
    """Return the probes run by ``rpc doctor``, in display order."""
    return (
        _make_probe("install", "install", _probe_install),
        _make_probe("version", "version", _probe_version),
        _make_probe("runtime-python", "runtime", _probe_python),
        _make_probe("runtime-node", "runtime", _probe_node),
        _make_probe("package-manager", "tooling", _probe_package_manager),
    )


def build_version_info(local: str | None, latest: str | None) -> VersionInfo:
    """Return a :class:`VersionInfo`; an update exists only if *latest* is newer."""
    update_available = (
        local is not None
        and latest is not None
        and compare_versions(latest, local) > 0
    )
    return VersionInfo(local=local, latest=latest, update_available=update_available)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_probe(
    probe_id: str,
    category: ProbeCategory,
    handler: Callable[[ProbeContext], ProbeResult],
) -> ProbeDefinition:
    return ProbeDefinition(id=probe_id, category=category, run=handler)


def _command_path(command: str) -> str | None:
    path = Path(command)
    if path.is_absolute():
        return str(path) if path.exists() and os.access(path, os.X_OK) else None
    return shutil.which(command)


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------


def _probe_install(context: ProbeContext) -> ProbeResult:
    package = context.config.package_name
    command = context.config.command_name
    status = context.install_inspector(package, command)
    data = {
        "distribution": status.distribution,
        "version": status.version,
        "command": status.command,
        "command_path": status.command_path,
    }
    if status.is_global:
        return ProbeResult(
            id="install",
            category="install",
            status=ProbeStatus.GREEN,
            message=f"{package} is installed and '{command}' is on PATH.",
            data=data,
        )
    if not status.distribution_found:
        message = f"{package} does not appear to be installed; some features may not work."
    else:
        message = f"'{command}' is not on PATH; {package} may be installed in an inactive environment."
    return ProbeResult(
        id="install",
        category="install",
        status=ProbeStatus.YELLOW,
        message=message,
        remediation=f"Install globally with: pipx install {package}",
        data=data,
    )


def _probe_version(context: ProbeContext) -> ProbeResult:
    package = context.config.package_name
    local = context.local_version
    try:
        latest = context.registry.latest_version(package)
    except RegistryError as exc:
        raise DiagnosticUnavailable(
            f"Could not check for updates; you may be offline. ({exc})"
        ) from exc

    info = build_version_info(local, latest)
    data = {
        "local": info.local,
        "latest": info.latest,
        "update_available": info.update_available,
    }
    if info.update_available:
        return ProbeResult(
            id="version",
            category="version",
            status=ProbeStatus.YELLOW,
            message=f"Update available: {local} → {latest}",
            remediation=f"Update with: pipx upgrade {package} (or pip install -U {package})",
            data=data,
        )
    return ProbeResult(
        id="version",
        category="version",
        status=ProbeStatus.GREEN,
        message=f"You are running the latest version ({local}).",
        data=data,
    )


def _probe_python(context: ProbeContext) -> ProbeResult:
    current = context.python_version
    required = context.config.min_python_version
    data = {"current": current, "required": required}
    if meets_minimum(current, required):
        return ProbeResult(
            id="runtime-python",
            category="runtime",
            status=ProbeStatus.GREEN,
            message=f"Python {current} (meets minimum requirement of {required})",
            data=data,
        )
    return ProbeResult(
        id="runtime-python",
        category="runtime",
        status=ProbeStatus.YELLOW,
        message=f"Python {current} (below minimum requirement of {required})",
        remediation=f"Update Python from {PYTHON_DOWNLOAD_URL}",
        data=data,
    )


def _probe_node(context: ProbeContext) -> ProbeResult:
    required = context.config.min_node_version
    try:
        info = context.node_detector()
    except NodeRuntimeError as exc:
        raise DiagnosticUnavailable(f"Could not determine the Node.js version ({exc}).") from exc
    if info is None:
        return ProbeResult(
            id="runtime-node",
            category="runtime",
            status=ProbeStatus.YELLOW,
            message="Node.js not found on PATH; package scripts will not run.",
            remediation=f"Install Node.js from {NODE_DOWNLOAD_URL}",
            data={"current": None, "required": required},
            warnings=("missing:node",),
        )
    data = {"current": info.version, "required": required}
    if meets_minimum(info.version, required):
        return ProbeResult(
            id="runtime-node",
            category="runtime",
            status=ProbeStatus.GREEN,
            message=f"Node.js {info.raw} (meets minimum requirement of {required})",
            data=data,
        )
    return ProbeResult(
        id="runtime-node",
        category="runtime",
        status=ProbeStatus.YELLOW,
        message=f"Node.js {info.raw} (below minimum requirement of {required})",
        remediation=f"Update Node.js from {NODE_DOWNLOAD_URL}",
        data=data,
    )


def _probe_package_manager(context: ProbeContext) -> ProbeResult:
    manager = detect_package_manager(context.cwd)
    resolved = _command_path(manager.name)
    data = {"manager": manager.name, "lock_file": manager.lock_file, "path": resolved}
    if resolved is not None:
        return ProbeResult(
            id="package-manager",
            category="tooling",
            status=ProbeStatus.GREEN,
            message=f"Package manager '{manager.name}' available.",
            data=data,
        )
    reason = f" ({manager.lock_file} present)" if manager.lock_file else ""
    return ProbeResult(
        id="package-manager",
        category="tooling",
        status=ProbeStatus.YELLOW,
        message=f"Package manager '{manager.name}'{reason} not found on PATH.",
        remediation=f"Install {manager.name} before running scripts in this directory.",
        data=data,
        warnings=(f"missing:{manager.name}",),
    )
