"""Operator commands intercepted before instructions reach the engine."""

from __future__ import annotations

import shlex
import webbrowser
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from stackpilot.cli.render import Renderer
from stackpilot.runtime import AppRuntime

COMMAND_PREFIX = "!"
URL_PREFIX = "http"


@dataclass(frozen=True)
class OperatorCommand:
    """Parsed `!name args...` line."""

    raw: str
    name: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CommandResult:
    exit_requested: bool = False


def parse_command_words(text: str) -> list[str]:
    """Split command text into words using shell rules."""

    try:
        return shlex.split(text)
    except ValueError:
        return text.split()


def detect_command(line: str) -> OperatorCommand | None:
    """Return the operator command on ``line``, or None for a plain instruction."""

    stripped = line.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return None
    words = parse_command_words(stripped[len(COMMAND_PREFIX) :])
    if not words:
        return OperatorCommand(raw=stripped, name="")
    return OperatorCommand(raw=stripped, name=words[0].casefold(), args=words[1:])


class CommandHandler:
    """Executes operator commands against one runtime."""

    def __init__(
        self,
        runtime: AppRuntime,
        renderer: Renderer,
        *,
        open_url: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self._runtime = runtime
        self._renderer = renderer
        self._open_url = open_url
        self._handlers: dict[str, Callable[[OperatorCommand], Awaitable[CommandResult]]] = {
            "quit": self._quit,
            "program": self._program,
            "stack": self._stack,
            "verbose": self._verbose,
            "open": self._open,
        }

    async def handle(self, command: OperatorCommand) -> CommandResult:
        handler = self._handlers.get(command.name)
        if handler is None:
            self._renderer.info(f"Unknown command: {command.raw}")
            return CommandResult()
        return await handler(command)

    async def _quit(self, _command: OperatorCommand) -> CommandResult:
        orchestrator = self._runtime.orchestrator
        if orchestrator.initialized:
            self._renderer.info("destroying stack...")
            await orchestrator.destroy()
        self._renderer.info("done. Goodbye!")
        return CommandResult(exit_requested=True)

    async def _program(self, _command: OperatorCommand) -> CommandResult:
        self._renderer.program(self._runtime.engine.state.program)
        return CommandResult()

    async def _stack(self, _command: OperatorCommand) -> CommandResult:
        if not self._require_stack():
            return CommandResult()
        self._renderer.resources(await self._runtime.orchestrator.export_resources())
        return CommandResult()

    async def _verbose(self, command: OperatorCommand) -> CommandResult:
        enabled = not (command.args and command.args[0].casefold() == "off")
        self._runtime.options.verbose = enabled
        self._renderer.warning(f"Verbose mode {'on' if enabled else 'off'}.")
        return CommandResult()

    async def _open(self, command: OperatorCommand) -> CommandResult:
        if not command.args:
            self._renderer.warning("Usage: !open <output>")
            return CommandResult()

        target = command.args[0]
        if target.startswith(URL_PREFIX):
            self._open_url(target)
            return CommandResult()

        if not self._require_stack():
            return CommandResult()
        outputs = await self._runtime.orchestrator.outputs()
        output = outputs.get(target)
        if output is None:
            self._renderer.warning(f"No stack output named {target!r}.")
            return CommandResult()
        self._open_url(str(output.value))
        return CommandResult()

    def _require_stack(self) -> bool:
        if self._runtime.orchestrator.initialized:
            return True
        self._renderer.warning("No stack is deployed in this session.")
        return False
