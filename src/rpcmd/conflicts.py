"""Disambiguation between script names and built-in command names."""
from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

from .cancellation import CancellationToken
from .manifest import ScriptNotFound
from .prompts import Choice, Prompter

RESERVED_COMMANDS: frozenset[str] = frozenset({"doctor", "run", "help"})


class Resolution(str, Enum):
    """How a requested name should be handled."""

    SCRIPT = "script"
    COMMAND = "command"


def has_conflict(
    name: str,
    scripts: Mapping[str, str],
    reserved: frozenset[str] = RESERVED_COMMANDS,
) -> bool:
    """Return ``True`` when *name* is both a script and a built-in command."""
    return name in reserved and name in scripts


def resolve_conflict(
    name: str,
    scripts: Mapping[str, str],
    *,
    prompter: Prompter,
    token: CancellationToken,
    reserved: frozenset[str] = RESERVED_COMMANDS,
) -> Resolution:
    """Decide whether *name* refers to a script or a built-in command.

    The user is prompted only when *name* is ambiguous.
    """
    if has_conflict(name, scripts, reserved):
        choice = prompter.choose(
            f"'{name}' exists as both a script and an rpc command. "
            "Which would you like to run?",
            [
                Choice(value=Resolution.SCRIPT.value, label="Run as a script (from package.json)"),
                Choice(value=Resolution.COMMAND.value, label="Run as an rpc command"),
            ],
            token=token,
        )
        return Resolution(choice)
    if name in scripts:
        return Resolution.SCRIPT
    if name in reserved:
        return Resolution.COMMAND
    raise ScriptNotFound(name, scripts)


__all__ = ["RESERVED_COMMANDS", "Resolution", "has_conflict", "resolve_conflict"]
