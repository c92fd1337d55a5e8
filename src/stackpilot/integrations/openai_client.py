"""OpenAI-compatible chat completions client."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
from loguru import logger

from stackpilot.config import Settings
from stackpilot.core.types import ModelConfig
from stackpilot.errors import ApiKeyNotConfiguredError, PromptError

CHAT_COMPLETIONS_PATH = "/chat/completions"
ERROR_BODY_PREVIEW = 500


class ChatCompletionsClient:
    """Submits single-message chat prompts and hands back raw SSE text chunks."""

    def __init__(
        self,
        *,
        api_key: str,
        api_base: str,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = api_base.rstrip("/") + CHAT_COMPLETIONS_PATH
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def stream_completion(self, prompt: str, model: ModelConfig) -> AsyncIterator[str]:
        body = self._body(prompt, model, stream=True)
        logger.debug("llm.stream.start model={} chars={}", model.model, len(prompt))
        try:
            async with self._client() as client, client.stream("POST", self._url, json=body) as response:
                await _raise_for_status(response)
                async for text in response.aiter_text():
                    yield text
        except httpx.HTTPError as exc:
            raise PromptError(f"completion stream failed: {exc!s}") from exc

    async def complete(self, prompt: str, model: ModelConfig) -> str:
        body = self._body(prompt, model, stream=False)
        try:
            async with self._client() as client:
                response = await client.post(self._url, json=body)
                await _raise_for_status(response)
        except httpx.HTTPError as exc:
            raise PromptError(f"completion request failed: {exc!s}") from exc

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise PromptError("completion response has no message content") from exc
        return content if isinstance(content, str) else ""

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    @staticmethod
    def _body(prompt: str, model: ModelConfig, *, stream: bool) -> dict[str, Any]:
        return {
            "model": model.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": model.temperature,
            "stream": stream,
        }


async def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    await response.aread()
    preview = response.text[:ERROR_BODY_PREVIEW]
    raise PromptError(f"completion endpoint returned {response.status_code}: {preview}")


def build_completion_client(settings: Settings) -> ChatCompletionsClient:
    """Build the completion client configured for one process."""

    api_key = settings.resolved_api_key
    if api_key is None:
        raise ApiKeyNotConfiguredError("API key not configured. Set STACKPILOT_API_KEY or OPENAI_API_KEY.")
    return ChatCompletionsClient(
        api_key=api_key,
        api_base=settings.api_base,
        timeout_seconds=settings.timeout_seconds,
    )
