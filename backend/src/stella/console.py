"""Operator terminal: decorated output and blocking line input."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from rich.console import Console
from rich.markup import escape

from .models import Decision

logger = logging.getLogger(__name__)

RULE = "-" * 50
PREVIEW_LINES = 10


class OperatorConsole:
    """Line-oriented prompt/response terminal built on Rich."""

    def __init__(
        self,
        console: Console | None = None,
        input_func: Callable[[str], str] | None = None,
    ) -> None:
        self.console: Console = console or Console()
        self._input = input_func or (lambda prompt: self.console.input(escape(prompt)))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _print(self, message: str = "") -> None:
        self.console.print(message, highlight=False)

    def banner(self, model: str) -> None:
        self._print("=" * 50)
        self._print(f"[bold]STELLA ({escape(model)}) started[/bold]")
        self._print("=" * 50)

    def decision(self, decision: Decision) -> None:
        """Show the display-only parts of a decision."""
        self._print()
        if decision.thought:
            self._print(f"[dim][Thought]: {escape(decision.thought)}[/dim]")
        if decision.message:
            self._print(RULE)
            self._print(f"[bold yellow][STELLA]:[/bold yellow] {escape(decision.message)}")
            self._print(RULE)

    def tool(self, name: str, detail: str | None = None) -> None:
        self._print(f"[bold green][Run]:[/bold green] {escape(name)}")
        if detail:
            self._print(f"   > {escape(detail)}")

    def preview(self, text: str) -> None:
        """Show the first lines of a tool's output."""
        text = text.strip()
        if not text:
            self._print("   > (no output)")
            return
        lines = text.split("\n")
        shown = "\n".join(lines[:PREVIEW_LINES])
        if len(lines) > PREVIEW_LINES:
            shown += "\n..."
        self._print(f"   > Output:\n{escape(shown)}")

    def error(self, kind: str, message: str) -> None:
        """Recoverable error, printed with a distinguishing marker."""
        self._print()
        self._print(f"[bold red]! [{escape(kind)}]:[/bold red] {escape(message)}")

    def raw_response(self, text: str) -> None:
        self._print("--- raw response ---")
        self._print(escape(text))
        self._print("--------------------")

    def notice(self, message: str) -> None:
        self._print()
        self._print(f"[bold]{escape(message)}[/bold]")

    async def ask(self, prompt: str) -> str:
        """
        Read one line of operator input in a worker thread.

        Raises:
            EOFError: the input stream is closed (or the console was closed).
        """
        if self._closed:
            raise EOFError("operator console is closed")
        return await asyncio.to_thread(self._input, prompt)

    def close(self) -> None:
        """Release the input side; later ``ask`` calls raise EOFError."""
        if not self._closed:
            logger.debug("Closing operator console")
        self._closed = True
