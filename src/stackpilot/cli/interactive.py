"""Interactive chat loop."""

from __future__ import annotations

from loguru import logger

from stackpilot.cli.commands import CommandHandler, detect_command
from stackpilot.cli.render import Renderer
from stackpilot.core.repair import run_with_repairs
from stackpilot.core.types import TurnOutcome, TurnResult
from stackpilot.errors import PromptError
from stackpilot.runtime import AppRuntime


def render_turn(renderer: Renderer, result: TurnResult) -> None:
    """Render the outcome of one turn for the operator."""

    match result.outcome:
        case TurnOutcome.FAILED:
            renderer.diagnostics(result.diagnostics)
        case TurnOutcome.SUCCEEDED:
            renderer.outputs(result.outputs or {})
        case TurnOutcome.GENERATED:
            renderer.program(result.program or "")
        case TurnOutcome.NO_PROGRAM:
            renderer.error(result.text)


class InteractiveCli:
    """Reads instructions and operator commands until the operator quits."""

    def __init__(self, runtime: AppRuntime, renderer: Renderer, *, max_repairs: int = 0) -> None:
        self._runtime = runtime
        self._renderer = renderer
        self._commands = CommandHandler(runtime, renderer)
        self._max_repairs = max_repairs

    async def run(self) -> None:
        self._renderer.welcome()
        await self._runtime.start()
        if self._runtime.orchestrator.initialized:
            self._renderer.stack_url(self._runtime.orchestrator.stack_url())
        self._renderer.question()

        while True:
            try:
                line = await self._renderer.get_user_input()
            except (KeyboardInterrupt, EOFError):
                self._renderer.info("Goodbye!")
                return
            if not line.strip():
                continue

            command = detect_command(line)
            if command is not None:
                result = await self._commands.handle(command)
                if result.exit_requested:
                    return
                continue

            await self._instruct(line.strip())

    async def _instruct(self, instruction: str) -> None:
        engine = self._runtime.engine
        try:
            with self._renderer.thinking() as indicator:
                unsubscribe = engine.subscribe_phase(indicator.on_phase)
                try:
                    result = await run_with_repairs(
                        engine,
                        instruction,
                        max_repairs=self._max_repairs,
                        on_token=indicator,
                        on_turn=self._on_repair_turn,
                    )
                finally:
                    unsubscribe()
        except PromptError as exc:
            logger.debug("cli.prompt.error error={}", exc)
            self._renderer.error(str(exc))
            return
        render_turn(self._renderer, result)

    def _on_repair_turn(self, instruction: str, result: TurnResult) -> None:
        if result.failed and self._max_repairs:
            self._renderer.warning(f"{instruction!r} failed with {len(result.diagnostics)} error(s).")
