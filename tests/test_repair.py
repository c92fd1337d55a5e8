from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from stackpilot.core.prompt import FIX_ERRORS_INSTRUCTION
from stackpilot.core.repair import run_with_repairs
from stackpilot.core.types import Diagnostic, ProgramResponse, TurnOutcome, TurnResult


def _result(outcome: TurnOutcome) -> TurnResult:
    diagnostics = (Diagnostic("error", "boom"),) if outcome is TurnOutcome.FAILED else ()
    return TurnResult(outcome=outcome, response=ProgramResponse(text="", program=""), diagnostics=diagnostics)


@dataclass
class ScriptedEngine:
    outcomes: list[TurnOutcome]
    instructions: list[str] = field(default_factory=list)

    async def interact(self, instruction: str, on_token=None) -> TurnResult:
        self.instructions.append(instruction)
        return _result(self.outcomes.pop(0))


@pytest.mark.asyncio
async def test_repairs_until_turn_succeeds() -> None:
    engine = ScriptedEngine([TurnOutcome.FAILED, TurnOutcome.FAILED, TurnOutcome.SUCCEEDED])
    seen: list[tuple[str, TurnOutcome]] = []

    result = await run_with_repairs(
        engine,  # type: ignore[arg-type]
        "An AWS VPC",
        max_repairs=5,
        on_turn=lambda instruction, turn: seen.append((instruction, turn.outcome)),
    )

    assert result.outcome is TurnOutcome.SUCCEEDED
    assert engine.instructions == ["An AWS VPC", FIX_ERRORS_INSTRUCTION, FIX_ERRORS_INSTRUCTION]
    assert seen[-1] == (FIX_ERRORS_INSTRUCTION, TurnOutcome.SUCCEEDED)


@pytest.mark.asyncio
async def test_stops_after_repair_budget() -> None:
    engine = ScriptedEngine([TurnOutcome.FAILED] * 3)

    result = await run_with_repairs(engine, "An AWS VPC", max_repairs=2)  # type: ignore[arg-type]

    assert result.failed is True
    assert len(engine.instructions) == 3


@pytest.mark.asyncio
async def test_zero_budget_and_non_failed_outcomes_do_not_repair() -> None:
    failing = ScriptedEngine([TurnOutcome.FAILED])
    assert (await run_with_repairs(failing, "x", max_repairs=0)).failed is True  # type: ignore[arg-type]

    missing = ScriptedEngine([TurnOutcome.NO_PROGRAM])
    result = await run_with_repairs(missing, "x", max_repairs=3)  # type: ignore[arg-type]
    assert result.outcome is TurnOutcome.NO_PROGRAM
    assert missing.instructions == ["x"]
