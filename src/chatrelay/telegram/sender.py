"""Reply helper that turns repeated sends into edits of one message."""

from __future__ import annotations

from ..logging import get_logger
from .api_models import Message
from .client import BotClient, TelegramResponse

logger = get_logger(__name__)

RICH_PARSE_MODE = "Markdown"


class MessageSender:
    """Sends into one chat, replying to the triggering message.

    Once a message id is recorded with `update`, every later send edits that
    message instead of posting a new one.
    """

    def __init__(
        self,
        bot: BotClient,
        *,
        chat_id: int,
        reply_to_message_id: int | None = None,
        message_thread_id: int | None = None,
    ) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.reply_to_message_id = reply_to_message_id
        self.message_thread_id = message_thread_id
        self._message_id: int | None = None

    @classmethod
    def from_message(cls, bot: BotClient, message: Message) -> MessageSender:
        return cls(
            bot,
            chat_id=message.chat.id,
            reply_to_message_id=message.message_id,
            message_thread_id=message.message_thread_id,
        )

    @property
    def message_id(self) -> int | None:
        return self._message_id

    def update(self, *, message_id: int | None) -> None:
        if message_id is None:
            return
        self._message_id = message_id

    async def _send(
        self, text: str, parse_mode: str | None
    ) -> TelegramResponse | None:
        if self._message_id is not None:
            return await self.bot.edit_message_text(
                chat_id=self.chat_id,
                message_id=self._message_id,
                text=text,
                parse_mode=parse_mode,
            )
        return await self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            reply_to_message_id=self.reply_to_message_id,
            parse_mode=parse_mode,
            message_thread_id=self.message_thread_id,
        )

    async def send_plain_text(self, text: str) -> TelegramResponse | None:
        return await self._send(text, None)

    async def send_rich_text(
        self, text: str, parse_mode: str = RICH_PARSE_MODE
    ) -> TelegramResponse | None:
        response = await self._send(text, parse_mode)
        if response is None or response.ok or response.rate_limited:
            return response
        # Telegram rejects unbalanced markup with 400; resend as plain text.
        logger.info(
            "sender.rich_text_rejected",
            chat_id=self.chat_id,
            status=response.status,
            description=response.description,
        )
        return await self._send(text, None)
