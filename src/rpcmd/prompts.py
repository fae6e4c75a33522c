"""Interactive single-choice prompts."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import typer
from rich.console import Console
from rich.markup import escape

from .cancellation import CancellationToken, OperationInterrupted

CANCEL_INPUTS = frozenset({"q", "quit", "0"})


class PromptCancelled(RuntimeError):
    """Raised when the user leaves a prompt through its cancel action."""


@dataclass(frozen=True, slots=True)
class Choice:
    """A selectable entry: *value* is returned, *label* and *hint* are shown."""

    value: str
    label: str
    hint: str | None = None


class Prompter(Protocol):
    """Anything able to ask the user for one of several choices."""

    def choose(
        self,
        message: str,
        choices: Sequence[Choice],
        *,
        token: CancellationToken,
    ) -> str:
        """Return the ``value`` of the selected choice."""
        ...


class ConsolePrompter:
    """Numbered-list prompt rendered with rich and read with ``typer.prompt``."""

    def __init__(self, console: Console) -> None:
        """Bind the prompter to *console* for rendering."""
        self._console = console

    def choose(
        self,
        message: str,
        choices: Sequence[Choice],
        *,
        token: CancellationToken,
    ) -> str:
        """Render *choices* and return the selected value.

        Entering ``q`` (or ``0``) raises :class:`PromptCancelled`. Ctrl-C or
        end of input cancels *token* and raises
        :class:`~rpcmd.cancellation.OperationInterrupted`.
        """
        if not choices:
            raise ValueError("choose() requires at least one choice.")
        token.raise_if_cancelled()

        self._console.print(f"[bold]{escape(message)}[/bold]")
        width = len(str(len(choices)))
        for index, choice in enumerate(choices, start=1):
            line = f"  [cyan]{index:>{width}}[/cyan]) [green]{escape(choice.label)}[/green]"
            if choice.hint:
                line += f" [dim]→ {escape(choice.hint)}[/dim]"
            self._console.print(line)

        by_value = {choice.value: choice.value for choice in choices}
        while True:
            try:
                raw = typer.prompt(f"Select 1-{len(choices)} (q to cancel)")
            except typer.Abort:
                token.cancel("prompt aborted")
                raise OperationInterrupted("prompt aborted") from None
            token.raise_if_cancelled()

            answer = str(raw).strip()
            if answer.lower() in CANCEL_INPUTS:
                raise PromptCancelled("Selection cancelled.")
            if answer in by_value:
                return by_value[answer]
            if answer.isdigit() and 1 <= int(answer) <= len(choices):
                return choices[int(answer) - 1].value
            self._console.print(f"[yellow]'{escape(answer)}' is not a valid choice.[/yellow]")


def select_script(
    scripts: Mapping[str, str],
    *,
    prompter: Prompter,
    token: CancellationToken,
    auto_select_single: bool = True,
) -> str:
    """Ask the user which script to run and return its name."""
    if not scripts:
        raise ValueError("select_script() requires at least one script.")
    if auto_select_single and len(scripts) == 1:
        return next(iter(scripts))
    choices = [Choice(value=name, label=name, hint=command) for name, command in scripts.items()]
    return prompter.choose("Select a script to run:", choices, token=token)


__all__ = [
    "CANCEL_INPUTS",
    "Choice",
    "ConsolePrompter",
    "PromptCancelled",
    "Prompter",
    "select_script",
]
