"""Conversation engine driving the instruction, program and deployment repair loop."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Protocol

from loguru import logger

from stackpilot.core.deploy import DeploymentOrchestrator
from stackpilot.core.extract import parse_response
from stackpilot.core.prompt import PromptContext, build_prompt, build_title_prompt
from stackpilot.core.stream import TokenCallback, decode_stream
from stackpilot.core.types import (
    ConversationState,
    ModelConfig,
    ProgramResponse,
    TurnOutcome,
    TurnPhase,
    TurnResult,
)
from stackpilot.errors import DeploymentError

TITLE_QUOTES = "\"'`"

PhaseListener = Callable[[TurnPhase], None]


class CompletionBackend(Protocol):
    """Model backend: a raw SSE chunk stream or a full completion."""

    def stream_completion(self, prompt: str, model: ModelConfig) -> AsyncIterator[str]: ...

    async def complete(self, prompt: str, model: ModelConfig) -> str: ...


class ConversationEngine:
    """Owns one session's state and runs one turn per instruction."""

    def __init__(
        self,
        backend: CompletionBackend,
        *,
        state: ConversationState,
        prompt_context: PromptContext | None = None,
        orchestrator: DeploymentOrchestrator | None = None,
    ) -> None:
        self._backend = backend
        self._state = state
        self._prompt_context = prompt_context or PromptContext()
        self._orchestrator = orchestrator
        self._phase = TurnPhase.IDLE
        self._phase_listeners: list[PhaseListener] = []
        self._turn_lock = asyncio.Lock()

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def orchestrator(self) -> DeploymentOrchestrator | None:
        return self._orchestrator

    def subscribe_phase(self, listener: PhaseListener) -> Callable[[], None]:
        """Call ``listener`` on every phase change; returns the unsubscribe function."""

        self._phase_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._phase_listeners:
                self._phase_listeners.remove(listener)

        return unsubscribe

    async def interact(self, instruction: str, on_token: TokenCallback | None = None) -> TurnResult:
        """Run one full turn for ``instruction``."""

        async with self._turn_lock:
            try:
                return await self._run_turn(instruction, on_token)
            finally:
                self._set_phase(TurnPhase.IDLE)

    async def _run_turn(self, instruction: str, on_token: TokenCallback | None) -> TurnResult:
        self._set_phase(TurnPhase.GENERATING)
        prompt = build_prompt(self._state, instruction, self._prompt_context)
        self._log_verbose("prompt: {}", prompt)
        text = await self._generate(prompt, on_token)
        self._log_verbose("response: {}", text)

        self._set_phase(TurnPhase.EXTRACTING)
        response = parse_response(text)
        if response.program is None:
            logger.info("engine.turn.no_program chars={}", len(text))
            return TurnResult(outcome=TurnOutcome.NO_PROGRAM, response=response)

        self._state.program = response.program
        orchestrator = self._orchestrator
        if orchestrator is None or not self._state.options.auto_deploy:
            return TurnResult(outcome=TurnOutcome.GENERATED, response=response)

        return await self._deploy(orchestrator, response)

    async def _deploy(self, orchestrator: DeploymentOrchestrator, response: ProgramResponse) -> TurnResult:
        self._set_phase(TurnPhase.DEPLOYING)
        try:
            result = await orchestrator.synchronize(self._state.program)
        except DeploymentError as exc:
            self._set_phase(TurnPhase.FAILED)
            failed = exc.result
            self._state.diagnostics = list(failed.diagnostics)
            return TurnResult(
                outcome=TurnOutcome.FAILED,
                response=response,
                diagnostics=failed.diagnostics,
                error=exc,
            )

        self._set_phase(TurnPhase.SUCCEEDED)
        self._state.diagnostics = []
        return TurnResult(outcome=TurnOutcome.SUCCEEDED, response=response, outputs=result.outputs)

    async def generate_title(self, program: str) -> str:
        """Ask the model for a short title describing ``program``; leaves session state untouched."""

        text = await self._backend.complete(build_title_prompt(program), self._state.model)
        return text.strip().strip(TITLE_QUOTES).strip()

    async def _generate(self, prompt: str, on_token: TokenCallback | None) -> str:
        async with aclosing(self._backend.stream_completion(prompt, self._state.model)) as chunks:
            return await decode_stream(chunks, on_token)

    def _set_phase(self, phase: TurnPhase) -> None:
        if phase is self._phase:
            return
        self._phase = phase
        logger.debug("engine.turn.phase phase={}", phase.value)
        for listener in list(self._phase_listeners):
            listener(phase)

    def _log_verbose(self, message: str, *args: object) -> None:
        if self._state.verbose:
            logger.info(message, *args)
