"""Streaming client for OpenAI-compatible `/chat/completions` endpoints."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx
import msgspec

from ..logging import get_logger
from ..model import ChatMessage
from .base import ChatBackendError

logger = get_logger(__name__)


class Delta(msgspec.Struct, forbid_unknown_fields=False):
    content: str | None = None


class Choice(msgspec.Struct, forbid_unknown_fields=False):
    delta: Delta = msgspec.field(default_factory=Delta)
    finish_reason: str | None = None


class ChatCompletionChunk(msgspec.Struct, forbid_unknown_fields=False):
    choices: list[Choice] = msgspec.field(default_factory=list)


_CHUNK_DECODER = msgspec.json.Decoder(ChatCompletionChunk)


def message_payload(message: ChatMessage) -> dict[str, Any]:
    if not message.images:
        return {"role": message.role, "content": message.content}
    parts: list[dict[str, Any]] = [{"type": "text", "text": message.content}]
    parts.extend(
        {"type": "image_url", "image_url": {"url": url}} for url in message.images
    )
    return {"role": message.role, "content": parts}


class OpenAICompatibleBackend:
    def __init__(
        self,
        *,
        name: str,
        api_key: str,
        base_url: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = 120,
    ) -> None:
        self.name = name
        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._timeout_s = timeout_s

    async def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        payload = {
            "model": self.model,
            "messages": [message_payload(m) for m in messages],
            "stream": True,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "text/event-stream",
        }
        client = self._client or httpx.AsyncClient(timeout=self._timeout_s)
        try:
            async with client.stream(
                "POST",
                f"{self._base_url}/chat/completions",
                json=payload,
                headers=headers,
            ) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise ChatBackendError(
                        f"{self.name} API error ({response.status_code}): {body}"
                    )
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:") :].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = _CHUNK_DECODER.decode(data)
                    except msgspec.DecodeError as e:
                        logger.debug(
                            "llm.bad_chunk", backend=self.name, error=str(e), data=data
                        )
                        continue
                    for choice in chunk.choices:
                        if choice.delta.content:
                            yield choice.delta.content
        finally:
            if self._client is None:
                await client.aclose()
