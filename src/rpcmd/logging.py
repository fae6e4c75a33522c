"""Structured operation logging for rpcmd commands.

Every CLI command runs inside :meth:`StructuredLogger.operation`. The scope
collects arguments, intermediate steps and a final result, then emits a single
record through the stdlib ``rpcmd.operations`` logger. When a log directory is
configured the same record is appended to ``operations.jsonl`` there; any
failure to create or write that file disables the file sink instead of failing
the command.
"""
from __future__ import annotations

import json
import logging
import os
import time
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER = logging.getLogger("rpcmd.operations")


def configure_logging(level: str | int) -> None:
    """Route the ``rpcmd`` logger hierarchy to stderr at *level*."""
    root = logging.getLogger("rpcmd")
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
        )
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(level)


def sanitize_payload(value: object) -> object:
    """Return *value* reduced to JSON-safe primitives."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): sanitize_payload(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [sanitize_payload(item) for item in value]
    return str(value)


def _timestamp() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class OperationScope:
    """Mutable record of a single command invocation."""

    def __init__(
        self,
        name: str,
        *,
        args: Mapping[str, object] | None = None,
        target: Mapping[str, object] | None = None,
    ) -> None:
        """Start a scope for operation *name*."""
        self.name = name
        self.op_id = uuid.uuid4().hex[:12]
        self.args = dict(args or {})
        self.target = dict(target or {})
        self.steps: list[dict[str, object]] = []
        self.result: dict[str, object] | None = None
        self.started_at = _timestamp()
        self._start = time.perf_counter()

    @property
    def duration_ms(self) -> int:
        """Return elapsed milliseconds since the scope started."""
        return int((time.perf_counter() - self._start) * 1000)

    def add_step(self, name: str, *, status: str = "info", detail: str | None = None) -> None:
        """Record an intermediate step."""
        step: dict[str, object] = {"name": name, "status": status}
        if detail:
            step["detail"] = detail
        self.steps.append(step)

    def success(
        self,
        message: str,
        *,
        rc: int = 0,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation successful."""
        self._set_result("success", message, rc=rc, context=context)

    def warning(
        self,
        message: str,
        *,
        rc: int = 0,
        warnings: Sequence[str] | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation as completed with warnings."""
        self._set_result(
            "warning",
            message,
            rc=rc,
            warnings=list(warnings) if warnings else [message],
            context=context,
        )

    def error(
        self,
        message: str,
        *,
        rc: int,
        errors: Sequence[str] | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation as failed with exit code *rc*."""
        self._set_result(
            "error",
            message,
            rc=rc,
            errors=list(errors) if errors else [message],
            context=context,
        )

    def _set_result(
        self,
        status: str,
        message: str,
        *,
        rc: int,
        warnings: list[str] | None = None,
        errors: list[str] | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        result: dict[str, object] = {"status": status, "message": message, "rc": rc}
        if warnings:
            result["warnings"] = warnings
        if errors:
            result["errors"] = errors
        if context:
            result["context"] = sanitize_payload(context)
        self.result = result

    def to_record(self) -> dict[str, object]:
        """Return the JSON-safe record for this operation."""
        return {
            "ts": self.started_at,
            "op_id": self.op_id,
            "command": self.name,
            "args": sanitize_payload(self.args),
            "target": sanitize_payload(self.target),
            "steps": list(self.steps),
            "result": self.result,
            "duration_ms": self.duration_ms,
            "pid": os.getpid(),
        }


class StructuredLogger:
    """Emit one structured record per CLI operation."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        """Enable the JSONL file sink when *logs_dir* is provided and writable."""
        self._operations_log_path: Path | None = None
        self._enabled = False
        if logs_dir is None:
            return
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning("Operations log disabled; cannot create %s: %s", logs_dir, exc)
            return
        self._operations_log_path = logs_dir / "operations.jsonl"
        self._enabled = True

    @property
    def operations_log_path(self) -> Path | None:
        """Return the JSONL path, or ``None`` when the file sink is disabled."""
        return self._operations_log_path if self._enabled else None

    @contextmanager
    def operation(
        self,
        name: str,
        *,
        args: Mapping[str, object] | None = None,
        target: Mapping[str, object] | None = None,
    ) -> Iterator[OperationScope]:
        """Yield an :class:`OperationScope` and emit it on exit.

        A scope left without an explicit result is recorded as an error when
        an exception escaped, and as a success otherwise.
        """
        scope = OperationScope(name, args=args, target=target)
        try:
            yield scope
        except BaseException as exc:
            if scope.result is None:
                scope.error(f"{type(exc).__name__}: {exc}", rc=1)
            raise
        finally:
            if scope.result is None:
                scope.success(f"{name} completed.")
            self._emit(scope)

    def _emit(self, scope: OperationScope) -> None:
        record = scope.to_record()
        result = scope.result or {}
        LOGGER.info(
            "%s %s (rc=%s, %d ms)",
            scope.name,
            result.get("status"),
            result.get("rc"),
            scope.duration_ms,
        )
        if not self._enabled or self._operations_log_path is None:
            return
        try:
            with self._operations_log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(record, sort_keys=True) + "\n")
        except OSError as exc:
            self._enabled = False
            LOGGER.warning("Operations log disabled after write failure: %s", exc)


__all__ = ["OperationScope", "StructuredLogger", "configure_logging", "sanitize_payload"]
