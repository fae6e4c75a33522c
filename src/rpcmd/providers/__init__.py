"""Provider interfaces for rpcmd."""
from __future__ import annotations

from .node import NodeRuntimeError, NodeVersionInfo, detect_node_version
from .package_manager import (
    PackageManager,
    ScriptError,
    ScriptExecutionFailed,
    ScriptOutcome,
    ScriptRunner,
    ScriptSpawnFailed,
    detect_package_manager,
)
from .registry import InstallStatus, RegistryClient, RegistryError, inspect_install

__all__ = [
    "InstallStatus",
    "NodeRuntimeError",
    "NodeVersionInfo",
    "PackageManager",
    "RegistryClient",
    "RegistryError",
    "ScriptError",
    "ScriptExecutionFailed",
    "ScriptOutcome",
    "ScriptRunner",
    "ScriptSpawnFailed",
    "detect_node_version",
    "detect_package_manager",
    "inspect_install",
]
