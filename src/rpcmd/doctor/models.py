"""Data models and helpers for doctor probes."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from ..config import AppConfig
    from ..providers.node import NodeVersionInfo
    from ..providers.registry import InstallStatus, RegistryClient


class DiagnosticUnavailable(RuntimeError):
    """Raised by a probe that could not complete its check."""


class ProbeStatus(str, Enum):
    """High-level outcome for a doctor probe."""

    GREEN = "green"
    YELLOW = "yellow"
    UNKNOWN = "unknown"

    @property
    def is_warning(self) -> bool:
        """Return ``True`` when the status deserves the user's attention."""
        return self is not ProbeStatus.GREEN


ProbeCategory = Literal["install", "version", "runtime", "tooling"]


@dataclass(slots=True, frozen=True)
class ProbeContext:
    """Execution context provided to doctor probes."""

    config: AppConfig
    registry: RegistryClient
    cwd: Path
    local_version: str
    python_version: str
    install_inspector: Callable[[str, str], InstallStatus]
    node_detector: Callable[[], NodeVersionInfo | None]


@dataclass(slots=True, frozen=True)
class VersionInfo:
    """Local vs published version of the tool."""

    local: str | None
    latest: str | None
    update_available: bool


@dataclass(slots=True, frozen=True)
class ProbeResult:
    """Outcome of running a probe."""

    id: str
    category: ProbeCategory
    status: ProbeStatus
    message: str
    remediation: str | None = None
    duration_ms: int | None = None
    data: Mapping[str, Any] | None = None
    warnings: Sequence[str] = field(default_factory=tuple)

    @property
    def is_warning(self) -> bool:
        """Return ``True`` when the probe result represents a warning."""
        return self.status.is_warning


@dataclass(slots=True, frozen=True)
class ProbeDefinition:
    """Metadata + callable for a probe."""

    id: str
    category: ProbeCategory
    run: Callable[[ProbeContext], ProbeResult]


@dataclass(slots=True, frozen=True)
class DoctorSummary:
    """Aggregated summary derived from probe results.

    ``exit_code`` is always ``0``: diagnostics report problems, they never
    fail the process.
    """

    status: ProbeStatus
    totals: Mapping[ProbeStatus, int]
    exit_code: int = 0


@dataclass(slots=True, frozen=True)
class DoctorReport:
    """Complete report for a doctor run."""

    results: Sequence[ProbeResult]
    summary: DoctorSummary
    metadata: Mapping[str, Any] | None = None


STATUS_ORDER: Mapping[ProbeStatus, int] = {
    ProbeStatus.GREEN: 0,
    ProbeStatus.UNKNOWN: 1,
    ProbeStatus.YELLOW: 2,
}


def aggregate_results(results: Iterable[ProbeResult]) -> DoctorSummary:
    """Compute the overall status and per-status totals."""
    totals: dict[ProbeStatus, int] = {status: 0 for status in ProbeStatus}
    worst_status = ProbeStatus.GREEN
    for result in results:
        totals[result.status] += 1
        if STATUS_ORDER[result.status] > STATUS_ORDER[worst_status]:
            worst_status = result.status
    return DoctorSummary(status=worst_status, totals=totals)


def build_report(
    results: Sequence[ProbeResult],
    metadata: Mapping[str, Any] | None = None,
) -> DoctorReport:
    """Create a full DoctorReport from probe results."""
    summary = aggregate_results(results)
    return DoctorReport(results=tuple(results), summary=summary, metadata=metadata)
