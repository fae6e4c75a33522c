"""Explicit cancellation token threaded through prompts and child waits."""
from __future__ import annotations

import logging
import threading

LOGGER = logging.getLogger(__name__)


class OperationInterrupted(RuntimeError):
    """Raised when the user interrupts a prompt or a running script."""

    def __init__(self, reason: str = "interrupted") -> None:
        super().__init__(reason)
        self.reason = reason


class CancellationToken:
    """One-shot flag shared by the blocking steps of a single command.

    The CLI creates one token per invocation. Blocking calls check it before
    and while they wait, and callers that observe an interrupt (for example a
    ``KeyboardInterrupt`` or an aborted prompt) mark it cancelled so later
    steps stop instead of starting new work.
    """

    def __init__(self) -> None:
        """Create an un-cancelled token."""
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Return the reason recorded by the first :meth:`cancel` call."""
        return self._reason

    def cancel(self, reason: str = "interrupted") -> None:
        """Mark the token cancelled. Subsequent calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        LOGGER.debug("Cancellation requested: %s", reason)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationInterrupted` when the token is cancelled."""
        if self._event.is_set():
            raise OperationInterrupted(self._reason or "interrupted")

    def wait(self, timeout: float) -> bool:
        """Block up to *timeout* seconds; return ``True`` if cancelled."""
        return self._event.wait(timeout)


__all__ = ["CancellationToken", "OperationInterrupted"]
