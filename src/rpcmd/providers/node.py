"""Detection of the Node.js runtime that package-manager scripts run on."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass

from ..versioning import parse_segments


class NodeRuntimeError(RuntimeError):
    """Raised when the Node version cannot be determined."""


@dataclass(slots=True)
class NodeVersionInfo:
    """Parsed Node version details."""

    raw: str
    version: str
    major: int
    minor: int
    patch: int


def detect_node_version(node_bin: str = "node", *, timeout: float = 5.0) -> NodeVersionInfo | None:
    """Return the version reported by ``node --version``.

    ``None`` means the binary is not installed; other failures raise
    :class:`NodeRuntimeError`.
    """
    try:
        result = subprocess.run(  # noqa: S603
            [node_bin, "--version"],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError:
        return None
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise NodeRuntimeError(f"'{node_bin} --version' failed: {exc}") from exc
    output = (result.stdout or result.stderr or "").strip()
    if result.returncode != 0 or not output:
        raise NodeRuntimeError(f"'{node_bin} --version' returned no version.")
    version = output.lstrip("v").strip()
    segments = (*parse_segments(version), 0, 0, 0)
    return NodeVersionInfo(
        raw=output,
        version=version,
        major=segments[0],
        minor=segments[1],
        patch=segments[2],
    )


__all__ = ["NodeRuntimeError", "NodeVersionInfo", "detect_node_version"]
