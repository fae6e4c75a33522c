"""Probe execution harness for the doctor command."""

from __future__ import annotations

import logging
import platform
import time
import traceback
from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from .. import get_version
from ..providers.node import detect_node_version
from ..providers.registry import RegistryClient, inspect_install
from .models import (
    DiagnosticUnavailable,
    DoctorReport,
    ProbeContext,
    ProbeDefinition,
    ProbeResult,
    ProbeStatus,
    build_report,
)

if TYPE_CHECKING:
    from ..config import AppConfig

LOGGER = logging.getLogger(__name__)


def _duration_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _coerce_result(
    probe: ProbeDefinition,
    result: ProbeResult,
    duration_ms: int,
) -> ProbeResult:
    coerced = result
    if result.id != probe.id:
        coerced = replace(coerced, id=probe.id)
    if result.category != probe.category:
        coerced = replace(coerced, category=probe.category)
    if result.duration_ms is None:
        coerced = replace(coerced, duration_ms=duration_ms)
    return coerced


def _unavailable(
    probe: ProbeDefinition,
    exc: DiagnosticUnavailable,
    duration_ms: int,
) -> ProbeResult:
    return ProbeResult(
        id=probe.id,
        category=probe.category,
        status=ProbeStatus.UNKNOWN,
        message=str(exc),
        duration_ms=duration_ms,
        warnings=("unavailable",),
    )


def _unexpected_failure(
    probe: ProbeDefinition,
    exc: Exception,
    duration_ms: int,
) -> ProbeResult:
    message = f"Probe '{probe.id}' raised an unexpected error: {exc}"
    data = {
        "exception": repr(exc),
        "traceback": traceback.format_exc(),
    }
    return ProbeResult(
        id=probe.id,
        category=probe.category,
        status=ProbeStatus.UNKNOWN,
        message=message,
        duration_ms=duration_ms,
        data=data,
        warnings=("unhandled-exception",),
    )


def _run_single_probe(
    probe: ProbeDefinition,
    context: ProbeContext,
) -> ProbeResult:
    start = time.perf_counter()
    try:
        result = probe.run(context)
    except DiagnosticUnavailable as exc:
        LOGGER.debug("Probe %s unavailable: %s", probe.id, exc)
        return _unavailable(probe, exc, _duration_ms(start))
    except Exception as exc:
        LOGGER.debug("Probe %s failed", probe.id, exc_info=True)
        return _unexpected_failure(probe, exc, _duration_ms(start))
    return _coerce_result(probe, result, _duration_ms(start))


def run_probes(
    context: ProbeContext,
    probes: Sequence[ProbeDefinition],
) -> list[ProbeResult]:
    """Execute probes one after another; a failing probe never stops the rest."""
    return [_run_single_probe(probe, context) for probe in probes]


def create_probe_context(
    config: AppConfig,
    *,
    cwd: Path | None = None,
    registry: RegistryClient | None = None,
) -> ProbeContext:
    """Build a ProbeContext wired to the real providers."""
    return ProbeContext(
        config=config,
        registry=registry
        or RegistryClient(base_url=config.registry_url, timeout=config.registry_timeout),
        cwd=cwd or Path.cwd(),
        local_version=get_version(),
        python_version=platform.python_version(),
        install_inspector=inspect_install,
        node_detector=detect_node_version,
    )


class DoctorEngine:
    """Coordinator that executes probes and aggregates the overall report."""

    def __init__(self, context: ProbeContext) -> None:
        """Store the probe execution context."""
        self._context = context

    def run(
        self,
        probes: Sequence[ProbeDefinition],
        *,
        metadata: Mapping[str, object] | None = None,
    ) -> DoctorReport:
        """Run the supplied probes and build a doctor report."""
        start = time.perf_counter()
        results = run_probes(self._context, probes)
        run_metadata: dict[str, object] = {
            "duration_ms": _duration_ms(start),
            "probe_count": len(results),
        }
        if metadata:
            run_metadata.update(metadata)
        return build_report(results, metadata=run_metadata)
