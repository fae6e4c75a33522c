"""Tests for script/command name disambiguation."""
from __future__ import annotations

import pytest

from helpers import FakePrompter
from rpcmd.cancellation import CancellationToken, OperationInterrupted
from rpcmd.conflicts import RESERVED_COMMANDS, Resolution, has_conflict, resolve_conflict
from rpcmd.manifest import ScriptNotFound

SCRIPTS = {"build": "tsc", "doctor": "node scripts/doctor.js"}


def test_reserved_commands() -> None:
    """Built-in command names are reserved."""
    assert RESERVED_COMMANDS == {"doctor", "run", "help"}
    assert has_conflict("doctor", SCRIPTS)
    assert not has_conflict("build", SCRIPTS)
    assert not has_conflict("help", SCRIPTS)


def test_script_only_needs_no_prompt() -> None:
    """A plain script name resolves to the script silently."""
    prompter = FakePrompter()

    resolution = resolve_conflict("build", SCRIPTS, prompter=prompter, token=CancellationToken())

    assert resolution is Resolution.SCRIPT
    assert prompter.calls == []


def test_command_only_needs_no_prompt() -> None:
    """A built-in with no matching script resolves to the command."""
    prompter = FakePrompter()

    resolution = resolve_conflict("help", SCRIPTS, prompter=prompter, token=CancellationToken())

    assert resolution is Resolution.COMMAND
    assert prompter.calls == []


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("script", Resolution.SCRIPT), ("command", Resolution.COMMAND)],
)
def test_conflict_prompts_exactly_once(answer: str, expected: Resolution) -> None:
    """An ambiguous name asks the user a single question."""
    prompter = FakePrompter(answer)

    resolution = resolve_conflict("doctor", SCRIPTS, prompter=prompter, token=CancellationToken())

    assert resolution is expected
    assert len(prompter.calls) == 1
    message, choices = prompter.calls[0]
    assert "'doctor' exists as both a script and an rpc command" in message
    assert [choice.value for choice in choices] == ["script", "command"]


def test_unknown_name_raises_script_not_found() -> None:
    """A name that is neither a script nor a command is reported."""
    with pytest.raises(ScriptNotFound) as excinfo:
        resolve_conflict("deploy", SCRIPTS, prompter=FakePrompter(), token=CancellationToken())
    assert excinfo.value.available == ("build", "doctor")


def test_conflict_respects_cancelled_token() -> None:
    """A cancelled token interrupts the conflict prompt."""
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationInterrupted):
        resolve_conflict("doctor", SCRIPTS, prompter=FakePrompter("script"), token=token)
