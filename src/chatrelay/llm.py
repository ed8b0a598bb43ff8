"""Model gateway: backend selection and streamed completion requests."""

from __future__ import annotations

import httpx

from .backends import ChatBackend, OpenAICompatibleBackend
from .config import ConfigError, LLMConfig
from .context import WorkerContext
from .logging import get_logger
from .model import (
    ChatMessage,
    ChatRequestParams,
    HistoryModifier,
    StreamResultHandler,
)

logger = get_logger(__name__)

PROVIDER_BASE_URLS: dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "deepseek": "https://api.deepseek.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "mistral": "https://api.mistral.ai/v1",
}

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "deepseek": "deepseek-chat",
    "groq": "llama-3.1-8b-instant",
    "mistral": "mistral-small-latest",
}


def load_chat_llm(
    user_config: LLMConfig, *, client: httpx.AsyncClient | None = None
) -> ChatBackend | None:
    """Build the configured backend, or None when no LLM is enabled."""
    provider = (user_config.provider or "").strip().lower()
    if provider in ("", "none"):
        return None
    if not user_config.api_key:
        logger.info("llm.missing_api_key", provider=provider)
        return None

    base_url = user_config.base_url or PROVIDER_BASE_URLS.get(provider)
    if base_url is None:
        raise ConfigError(
            f"Unknown LLM provider {provider!r}; set `llm.base_url` to use it."
        )
    model = user_config.model or DEFAULT_MODELS.get(provider)
    if model is None:
        raise ConfigError(f"Missing `llm.model` for provider {provider!r}.")

    return OpenAICompatibleBackend(
        name=provider,
        api_key=user_config.api_key,
        base_url=base_url,
        model=model,
        client=client,
    )


def build_messages(
    params: ChatRequestParams,
    context: WorkerContext,
    modifier: HistoryModifier | None,
) -> list[ChatMessage]:
    # History is not persisted; a modifier may still inject context.
    history: list[ChatMessage] = []
    user_message: ChatMessage | None = ChatMessage(
        role="user",
        content=params.message,
        images=tuple(params.images or ()),
    )
    if modifier is not None:
        history, user_message = modifier(history, user_message)

    messages: list[ChatMessage] = []
    system_prompt = context.user_config.system_prompt
    if system_prompt:
        messages.append(ChatMessage(role="system", content=system_prompt))
    messages.extend(history)
    if user_message is not None:
        messages.append(user_message)
    return messages


async def request_completions_from_llm(
    params: ChatRequestParams,
    context: WorkerContext,
    backend: ChatBackend,
    modifier: HistoryModifier | None,
    on_stream: StreamResultHandler | None,
) -> str:
    """Run one completion, reporting the cumulative answer after each delta.

    `on_stream` is awaited before the next delta is read, so callbacks for one
    request never overlap.
    """
    messages = build_messages(params, context, modifier)
    logger.debug(
        "llm.request",
        backend=backend.name,
        model=backend.model,
        messages=len(messages),
        images=len(params.images or ()),
    )
    answer = ""
    async for delta in backend.stream(messages):
        if not delta:
            continue
        answer += delta
        if on_stream is not None:
            await on_stream(answer)
    logger.info(
        "llm.completed", backend=backend.name, model=backend.model, chars=len(answer)
    )
    return answer
