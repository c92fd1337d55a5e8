"""Deployment orchestration against one engine stack."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from stackpilot.core.events import (
    DiagnosticNotice,
    IgnoredEvent,
    ProgressNotice,
    UnrecognizedEvent,
    classify_event,
)
from stackpilot.core.types import DeploymentResult, Diagnostic, SessionOptions, StackHandle, StackOutput
from stackpilot.errors import DeploymentError, InitializationError, StackNotInitializedError

StackOpener = Callable[[str, str], StackHandle]
ProgressCallback = Callable[[str], None]

EMPTY_PROGRAM = ""


class DeploymentOrchestrator:
    """Drives `up` cycles on one stack and turns its events into outputs or diagnostics."""

    def __init__(
        self,
        open_stack: StackOpener,
        *,
        region: str,
        options: SessionOptions,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._open_stack = open_stack
        self._region = region
        self._options = options
        self._on_progress = on_progress
        self._stack: StackHandle | None = None
        self._lock = asyncio.Lock()

    @property
    def stack(self) -> StackHandle:
        if self._stack is None:
            raise StackNotInitializedError("stack is not initialized")
        return self._stack

    @property
    def initialized(self) -> bool:
        return self._stack is not None

    async def initialize(self, stack_name: str, project_name: str) -> StackHandle:
        """Select or create the stack and bring it to an empty baseline."""

        logger.info("deploy.initialize stack={} project={}", stack_name, project_name)
        try:
            stack = await asyncio.to_thread(self._open_stack, stack_name, project_name)
            await asyncio.to_thread(stack.set_region, self._region)
        except Exception as exc:
            raise InitializationError(f"failed to select stack {project_name}/{stack_name}: {exc!s}") from exc

        # Clears an update left pending by an interrupted run.
        try:
            await asyncio.to_thread(stack.cancel)
        except Exception as exc:
            logger.debug("deploy.initialize.cancel_skipped stack={} error={}", stack_name, exc)
        else:
            logger.debug("deploy.initialize.cancelled stack={}", stack_name)

        self._stack = stack
        await self.synchronize(EMPTY_PROGRAM)
        return stack

    async def synchronize(self, program: str) -> DeploymentResult:
        """Point the stack at ``program`` and run one update."""

        stack = self.stack
        async with self._lock:
            diagnostics: list[Diagnostic] = []
            on_event = self._event_handler(diagnostics)
            try:
                await asyncio.to_thread(stack.set_program, program)
                outputs = await asyncio.to_thread(stack.up, on_event)
            except Exception as exc:
                logger.info("deploy.up.failed diagnostics={}", len(diagnostics))
                raise DeploymentError(f"update failed: {exc!s}", DeploymentResult.failure(diagnostics)) from exc

        logger.info("deploy.up.ok outputs={}", len(outputs))
        return DeploymentResult.success(outputs)

    async def outputs(self) -> Mapping[str, StackOutput]:
        return await asyncio.to_thread(self.stack.outputs)

    async def export_resources(self) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self.stack.export_resources)

    async def destroy(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self.stack.destroy)

    def stack_url(self) -> str | None:
        return self.stack.url()

    def _event_handler(self, diagnostics: list[Diagnostic]) -> Callable[[Any], None]:
        def on_event(event: Any) -> None:
            try:
                self._handle_event(event, diagnostics)
            except Exception as exc:
                logger.warning("deploy.event.error event={} error={}", event, exc)

        return on_event

    def _handle_event(self, event: Any, diagnostics: list[Diagnostic]) -> None:
        match classify_event(event):
            case DiagnosticNotice(diagnostic=diagnostic):
                diagnostics.append(diagnostic)
                if self._options.verbose:
                    logger.info("deploy.diagnostic {}", diagnostic.to_json())
            case ProgressNotice() as notice:
                self._progress(notice.render())
            case IgnoredEvent():
                pass
            case UnrecognizedEvent(event=raw):
                logger.warning("deploy.event.unhandled event={}", raw)

    def _progress(self, line: str) -> None:
        if self._on_progress is not None:
            self._on_progress(line)
            return
        logger.info(line)
