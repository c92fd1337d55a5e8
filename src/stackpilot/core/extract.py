"""Fenced code block extraction from model output."""

from __future__ import annotations

from stackpilot.core.types import ProgramResponse

FENCE = "```"


def extract_program(text: str) -> str | None:
    """Return the body of the first fenced code block, or None when there is no fence.

    The body starts after the opening fence line, so an optional language tag on
    that line is skipped, and stops at the next fence. An unclosed block runs to
    the end of the text.
    """

    fence_start = text.find(FENCE)
    if fence_start == -1:
        return None

    line_end = text.find("\n", fence_start + len(FENCE))
    if line_end == -1:
        return ""
    body_start = line_end + 1

    body_end = text.find(FENCE, body_start)
    if body_end == -1:
        return text[body_start:]
    return text[body_start:body_end]


def parse_response(text: str) -> ProgramResponse:
    return ProgramResponse(text=text, program=extract_program(text))
