"""Doctor command infrastructure."""

from __future__ import annotations

from .engine import DoctorEngine, create_probe_context, run_probes
from .models import (
    DiagnosticUnavailable,
    DoctorReport,
    DoctorSummary,
    ProbeCategory,
    ProbeContext,
    ProbeDefinition,
    ProbeResult,
    ProbeStatus,
    VersionInfo,
    aggregate_results,
    build_report,
)
from .probes import build_version_info, collect_probes
from .utils import serialize_report

__all__ = [
    "DiagnosticUnavailable",
    "DoctorEngine",
    "DoctorReport",
    "DoctorSummary",
    "ProbeCategory",
    "ProbeContext",
    "ProbeDefinition",
    "ProbeResult",
    "ProbeStatus",
    "VersionInfo",
    "aggregate_results",
    "build_report",
    "build_version_info",
    "collect_probes",
    "create_probe_context",
    "run_probes",
    "serialize_report",
]
