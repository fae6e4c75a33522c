"""Tests for the cancellation token."""
from __future__ import annotations

import pytest

from rpcmd.cancellation import CancellationToken, OperationInterrupted


def test_token_starts_uncancelled() -> None:
    """A fresh token neither raises nor reports a reason."""
    token = CancellationToken()
    assert not token.cancelled
    assert token.reason is None
    token.raise_if_cancelled()
    assert token.wait(0) is False


def test_cancel_keeps_first_reason() -> None:
    """Repeated cancellation does not overwrite the original reason."""
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")
    assert token.cancelled
    assert token.reason == "first"
    assert token.wait(0) is True

    with pytest.raises(OperationInterrupted) as excinfo:
        token.raise_if_cancelled()
    assert excinfo.value.reason == "first"
