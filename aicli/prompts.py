"""Interactive prompts used by the lifecycle controller and the menu.

The controller only talks to a ``Prompter``; tests substitute a scripted one.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt


console = Console()


class Prompter:
    """Ask questions on the terminal through Rich."""

    def __init__(self, console: Console = console) -> None:
        self.console = console

    def confirm(self, question: str, *, default: bool = False) -> bool:
        return Confirm.ask(question, default=default, console=self.console)

    def choose(self, question: str, choices: Sequence[str], *, default: str | None = None) -> str:
        return Prompt.ask(question, choices=list(choices), default=default, console=self.console)

    def text(self, question: str, *, default: str | None = None) -> str:
        answer = Prompt.ask(question, default=default, console=self.console)
        return (answer or "").strip()


class NonInteractivePrompter(Prompter):
    """Answer every question with its default, for runs without a terminal."""

    def confirm(self, question: str, *, default: bool = False) -> bool:
        return default

    def choose(self, question: str, choices: Sequence[str], *, default: str | None = None) -> str:
        return default if default is not None else choices[0]

    def text(self, question: str, *, default: str | None = None) -> str:
        return default or ""


__all__ = ["NonInteractivePrompter", "Prompter", "console"]
