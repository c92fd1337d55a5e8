"""Server-sent event decoding for streamed chat completions."""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from stackpilot.core.types import StreamChunk
from stackpilot.errors import StreamDecodeError

EVENT_SEPARATOR = "\n\n"
DATA_PREFIX = "data:"
COMMENT_PREFIX = ":"
DONE_SENTINEL = "[DONE]"

TokenCallback = Callable[[str], None]


class CompletionStreamDecoder:
    """Push-driven assembler for ``data: <json>`` events.

    Chunk boundaries are arbitrary: an event may be split across chunks and a
    chunk may hold several events, so incomplete trailing text is buffered
    until its separator arrives.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, chunk: str) -> list[StreamChunk]:
        if self._done:
            return []
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")
        *events, self._buffer = self._buffer.split(EVENT_SEPARATOR)
        return self._decode_events(events)

    def finish(self) -> list[StreamChunk]:
        """Flush whatever is left in the buffer once the source is exhausted."""
        if self._done:
            return []
        remainder, self._buffer = self._buffer, ""
        return self._decode_events([remainder])

    def _decode_events(self, events: list[str]) -> list[StreamChunk]:
        decoded: list[StreamChunk] = []
        for event in events:
            for item in _decode_event(event):
                decoded.append(item)
                if item.kind != "text":
                    self._done = item.kind == "done" or self._done
                    return decoded
        return decoded


def _decode_event(event: str) -> list[StreamChunk]:
    items: list[StreamChunk] = []
    for line in event.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            continue
        if not stripped.startswith(DATA_PREFIX):
            items.append(StreamChunk(kind="malformed", raw=stripped))
            return items
        payload = stripped[len(DATA_PREFIX) :].strip()
        if not payload:
            continue
        if payload == DONE_SENTINEL:
            items.append(StreamChunk(kind="done", raw=payload))
            return items
        item = _decode_payload(payload)
        if item is not None:
            items.append(item)
            if item.kind == "malformed":
                return items
    return items


def _decode_payload(payload: str) -> StreamChunk | None:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return StreamChunk(kind="malformed", raw=payload)
    if not isinstance(data, dict):
        return StreamChunk(kind="malformed", raw=payload)
    delta = _delta_text(data)
    if not delta:
        return None
    return StreamChunk(kind="text", text=delta, raw=payload)


def _delta_text(data: dict[str, Any]) -> str | None:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


async def iter_tokens(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield text deltas in arrival order until the completion marker."""

    decoder = CompletionStreamDecoder()
    async for chunk in chunks:
        for item in decoder.feed(chunk):
            if item.kind == "malformed":
                raise StreamDecodeError(f"malformed stream payload: {item.raw[:200]}")
            if item.kind == "done":
                return
            yield item.text

    for item in decoder.finish():
        if item.kind == "malformed":
            raise StreamDecodeError(f"malformed stream payload: {item.raw[:200]}")
        if item.kind == "done":
            return
        yield item.text
    raise StreamDecodeError(f"stream ended before {DONE_SENTINEL}")


async def decode_stream(chunks: AsyncIterable[str], on_token: TokenCallback | None = None) -> str:
    """Assemble a full completion, forwarding each token to ``on_token`` as it arrives."""

    parts: list[str] = []
    async for token in iter_tokens(chunks):
        if on_token is not None:
            on_token(token)
        parts.append(token)
    return "".join(parts)
