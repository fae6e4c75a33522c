"""Shared fixtures for the rpcmd test suite."""
from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

FAKE_MANAGER_SCRIPT = """#!/bin/sh
printf '%s\\n' "$(basename "$0")" "$@" > "$RPC_TEST_ARGS_FILE"
pwd >> "$RPC_TEST_ARGS_FILE"
exit "${RPC_TEST_EXIT_CODE:-0}"
"""


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create and chdir into an empty project directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def fake_bin(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Put fake npm/yarn/pnpm executables first on PATH.

    Each fake writes its name, arguments and working directory to
    ``$RPC_TEST_ARGS_FILE`` and exits with ``$RPC_TEST_EXIT_CODE``.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name in ("npm", "yarn", "pnpm"):
        script = bin_dir / name
        script.write_text(FAKE_MANAGER_SCRIPT, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("RPC_TEST_ARGS_FILE", str(tmp_path / "args.txt"))
    monkeypatch.delenv("RPC_TEST_EXIT_CODE", raising=False)
    return bin_dir


@pytest.fixture
def recorded_args(tmp_path: Path) -> Path:
    """Return the file the fake package managers write to."""
    return tmp_path / "args.txt"


@pytest.fixture
def empty_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point PATH at an empty directory so no package manager resolves."""
    empty = tmp_path / "empty-bin"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    return empty


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Environment isolating the CLI from user config and the network."""
    for key in list(os.environ):
        if key.startswith("RPC_") and not key.startswith("RPC_TEST_"):
            monkeypatch.delenv(key, raising=False)
    return {
        "RPC_CONFIG_FILE": str(tmp_path / "missing-config.yml"),
        "RPC_SKIP_REGISTRY": "1",
    }
