"""Chat turn orchestration: placeholder, streamed edits, final answer."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Sequence

import anyio

from .attachments import find_photo_file_id
from .context import WorkerContext
from .images import ImageUploadError, upload_image_to_telegraph
from .llm import load_chat_llm, request_completions_from_llm
from .logging import get_logger
from .model import ChatRequestParams, HistoryModifier
from .telegram.api_models import Message, PhotoSize
from .telegram.client import BotClient, TelegramResponse
from .telegram.sender import MessageSender
from .throttle import StreamThrottler

logger = get_logger(__name__)

PLACEHOLDER_TEXT = "..."
LLM_DISABLED_TEXT = "LLM is not enabled"
ERROR_MESSAGE_LIMIT = 2048


def format_error(exc: BaseException, *, limit: int = ERROR_MESSAGE_LIMIT) -> str:
    return f"Error: {exc}"[:limit]


async def _send_placeholder(sender: MessageSender) -> None:
    try:
        response = await sender.send_plain_text(PLACEHOLDER_TEXT)
    except Exception as exc:
        logger.error(
            "chat.placeholder_failed",
            chat_id=sender.chat_id,
            error=str(exc),
            error_type=exc.__class__.__name__,
        )
        return
    if response is None or not response.ok:
        logger.warning(
            "chat.placeholder_failed",
            chat_id=sender.chat_id,
            status=response.status if response is not None else None,
        )
        return
    sender.update(message_id=response.message_id)


async def _send_typing(bot: BotClient, message: Message) -> None:
    try:
        await bot.send_chat_action(
            chat_id=message.chat.id,
            action="typing",
            message_thread_id=message.message_thread_id,
        )
    except Exception as exc:
        logger.error(
            "chat.typing_failed",
            chat_id=message.chat.id,
            error=str(exc),
            error_type=exc.__class__.__name__,
        )


async def _relay(
    sender: MessageSender,
    params: ChatRequestParams,
    context: WorkerContext,
    modifier: HistoryModifier | None,
    *,
    clock: Callable[[], float],
    sleep: Callable[[float], Awaitable[None]],
) -> TelegramResponse | None:
    try:
        throttler: StreamThrottler | None = None
        if context.settings.stream_mode:
            throttler = StreamThrottler(sender, clock=clock)

        backend = load_chat_llm(context.user_config, client=context.http)
        if backend is None:
            return await sender.send_plain_text(LLM_DISABLED_TEXT)

        answer = await request_completions_from_llm(
            params, context, backend, modifier, throttler
        )
        if throttler is not None:
            # The last streamed edit may have opened a rate-limit window; the
            # final answer must not land inside it.
            delay = throttler.pending_delay()
            while delay > 0:
                logger.info("chat.settle", chat_id=sender.chat_id, delay=delay)
                await sleep(delay)
                delay = throttler.pending_delay()
        return await sender.send_rich_text(answer)
    except Exception as exc:
        logger.error(
            "chat.failed",
            chat_id=sender.chat_id,
            error=str(exc),
            error_type=exc.__class__.__name__,
        )
        try:
            return await sender.send_plain_text(format_error(exc))
        except Exception as send_exc:
            logger.error(
                "chat.error_send_failed",
                chat_id=sender.chat_id,
                error=str(send_exc),
                error_type=send_exc.__class__.__name__,
            )
            return None


async def chat_with_llm(
    message: Message,
    params: ChatRequestParams,
    context: WorkerContext,
    modifier: HistoryModifier | None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
) -> TelegramResponse | None:
    """Answer one chat message, streaming into a placeholder reply.

    Never raises for model or platform failures: errors are sent to the user
    as plain text. Returns the response of the final send, or None when even
    that could not reach Telegram.
    """
    sender = MessageSender.from_message(context.bot, message)
    logger.debug(
        "chat.turn_started",
        chat_id=sender.chat_id,
        message_id=message.message_id,
        stream_mode=context.settings.stream_mode,
    )
    async with anyio.create_task_group() as tg:
        try:
            await _send_placeholder(sender)
            tg.start_soon(_send_typing, context.bot, message)
            return await _relay(
                sender, params, context, modifier, clock=clock, sleep=sleep
            )
        finally:
            # Typing is best-effort; whatever is still pending is dropped.
            tg.cancel_scope.cancel()


class ChatHandler:
    """Turns an inbound text or photo message into a chat turn."""

    async def handle(
        self, message: Message, context: WorkerContext
    ) -> TelegramResponse | None:
        params = ChatRequestParams(message=message.text or message.caption or "")
        if message.photo:
            url = await self._photo_url(message.photo, context)
            if url is not None:
                params.images = [url]
        return await chat_with_llm(message, params, context, None)

    async def _photo_url(
        self, photos: Sequence[PhotoSize], context: WorkerContext
    ) -> str | None:
        file_id = find_photo_file_id(photos, context.settings.photo_size_offset)
        file = await context.bot.get_file(file_id)
        if file is None or not file.file_path:
            logger.warning("chat.photo_unavailable", file_id=file_id)
            return None
        url = context.bot.file_url(file.file_path)
        if not context.settings.telegraph_enable:
            return url
        try:
            return await upload_image_to_telegraph(url, client=context.http)
        except ImageUploadError as exc:
            logger.warning("chat.photo_upload_failed", file_id=file_id, error=str(exc))
            return url
