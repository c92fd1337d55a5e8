"""Caller-side automatic repair loop."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from stackpilot.core.engine import ConversationEngine
from stackpilot.core.prompt import FIX_ERRORS_INSTRUCTION
from stackpilot.core.stream import TokenCallback
from stackpilot.core.types import TurnResult

TurnCallback = Callable[[str, TurnResult], None]


async def run_with_repairs(
    engine: ConversationEngine,
    instruction: str,
    *,
    max_repairs: int,
    on_token: TokenCallback | None = None,
    on_turn: TurnCallback | None = None,
) -> TurnResult:
    """Issue ``instruction``, then ask the model to fix the errors while the last turn failed."""

    result = await engine.interact(instruction, on_token)
    if on_turn is not None:
        on_turn(instruction, result)

    attempts = 0
    while result.failed and attempts < max_repairs:
        attempts += 1
        logger.info("repair.attempt attempt={} max={} diagnostics={}", attempts, max_repairs, len(result.diagnostics))
        result = await engine.interact(FIX_ERRORS_INSTRUCTION, on_token)
        if on_turn is not None:
            on_turn(FIX_ERRORS_INSTRUCTION, result)
    return result
