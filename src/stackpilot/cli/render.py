"""CLI renderer for stackpilot."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markup import escape
from rich.status import Status

from stackpilot.core.types import Diagnostic, StackOutput, TurnPhase

THINKING_TAIL_CHARS = 60
THINKING_FRAMES = (".  ", ".. ", "...", "   ")
WHITESPACE_RE = re.compile(r"[\n\t\r]")


class ThinkingIndicator:
    """Status line showing the tail of the text streamed so far."""

    def __init__(self, status: Status) -> None:
        self._status = status
        self._tail = ""
        self._ticks = 0
        self._active = True

    def __call__(self, token: str) -> None:
        self._tail = (self._tail + WHITESPACE_RE.sub(" ", token))[-THINKING_TAIL_CHARS:]
        frame = THINKING_FRAMES[(self._ticks // 3) % len(THINKING_FRAMES)]
        self._ticks += 1
        self._status.update(f"Thinking{frame}  [dim]{escape(self._tail)}[/dim]")

    def on_phase(self, phase: TurnPhase) -> None:
        """Show the status only while the model is generating."""
        if phase is TurnPhase.GENERATING:
            self.start()
        else:
            self.stop()

    def start(self) -> None:
        if self._active:
            return
        self._tail = ""
        self._ticks = 0
        self._status.update("Thinking...")
        self._status.start()
        self._active = True

    def stop(self) -> None:
        if not self._active:
            return
        self._status.stop()
        self._active = False


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self._prompt_session: PromptSession[str] | None = None
        self._print_lock = threading.Lock()

    def welcome(self) -> None:
        self._print("[bold magenta]Welcome to StackPilot.[/bold magenta]")
        self._print("")

    def stack_url(self, url: str | None) -> None:
        if url:
            self._print(f"Your stack: [blue underline]{escape(url)}/resources[/blue underline]")
            self._print("")

    def question(self) -> None:
        self._print("[italic]What cloud infrastructure do you want to build today?[/italic]")

    def info(self, message: str) -> None:
        self._print(escape(message))

    def warning(self, message: str) -> None:
        self._print(f"[yellow]{escape(message)}[/yellow]")

    def error(self, message: str) -> None:
        self._print(f"[bold red]error:[/bold red] {escape(message)}")

    def progress(self, line: str) -> None:
        """Render one resource step line; safe to call from the engine's event thread."""
        self._print(f"[dim]{escape(line)}[/dim]")

    def outputs(self, outputs: Mapping[str, StackOutput]) -> None:
        if not outputs:
            return
        self._print("Stack Outputs:")
        for name, output in outputs.items():
            value = "[secret]" if output.secret else output.value
            self._print(f"  {escape(name)}: {escape(str(value))}")

    def diagnostics(self, diagnostics: Sequence[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.error(diagnostic.to_json())
        self._print("[italic]Ask me to fix the error, or describe what to change.[/italic]")

    def program(self, program: str) -> None:
        with self._print_lock:
            self.console.print(program, markup=False, highlight=False)

    def resources(self, resources: list[dict[str, Any]]) -> None:
        with self._print_lock:
            self.console.print_json(data=resources)

    @contextmanager
    def thinking(self) -> Iterator[ThinkingIndicator]:
        with self.console.status("Thinking...") as status:
            yield ThinkingIndicator(status)

    async def get_user_input(self) -> str:
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        with patch_stdout(raw=True):
            return await self._prompt_session.prompt_async("\n> ")

    def _print(self, message: str) -> None:
        with self._print_lock:
            self.console.print(message)
