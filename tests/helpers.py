"""Test doubles shared across the rpcmd test modules."""
from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from rpcmd.cancellation import CancellationToken
from rpcmd.prompts import Choice


class FakePrompter:
    """Prompter returning queued answers and recording each question."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.calls: list[tuple[str, tuple[Choice, ...]]] = []

    def choose(
        self,
        message: str,
        choices: Sequence[Choice],
        *,
        token: CancellationToken,
    ) -> str:
        self.calls.append((message, tuple(choices)))
        token.raise_if_cancelled()
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {message}")
        return self.answers.pop(0)


def write_manifest(directory: Path, scripts: object, **extra: object) -> Path:
    """Write a package.json with *scripts* into *directory*."""
    payload: dict[str, object] = {"name": "demo", "version": "1.0.0", **extra}
    if scripts is not None:
        payload["scripts"] = scripts
    path = directory / "package.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
