"""Enumerations for CLI exit codes."""
from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Well-known exit codes enforced across the CLI.

    A failing script is not listed here: ``rpc`` exits with the script's own
    status so callers see the same code they would get from the package
    manager directly.
    """

    OK = 0
    FAILURE = 1
    INTERRUPTED = 130
