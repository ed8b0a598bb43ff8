"""Per-turn streaming callback that coalesces edits under Telegram rate limits."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from .logging import get_logger
from .telegram.sender import MessageSender

logger = get_logger(__name__)


@dataclass(slots=True)
class ThrottleState:
    suppressed_until: float | None = None

    def is_suppressed(self, now: float) -> bool:
        return self.suppressed_until is not None and now < self.suppressed_until

    def remaining(self, now: float) -> float:
        if self.suppressed_until is None:
            return 0.0
        return max(0.0, self.suppressed_until - now)


class StreamThrottler:
    """Pushes cumulative answer text into the placeholder message.

    Attempts made while a rate-limit window is open are skipped; the next
    attempt after the window carries the latest text, so updates are coalesced
    rather than lost. Failures never propagate to the caller.
    """

    def __init__(
        self,
        sender: MessageSender,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sender = sender
        self.clock = clock
        self.state = ThrottleState()
        self.attempts = 0
        self.skipped = 0

    def pending_delay(self) -> float:
        return self.state.remaining(self.clock())

    async def __call__(self, text: str) -> None:
        if self.state.is_suppressed(self.clock()):
            self.skipped += 1
            return
        self.attempts += 1
        try:
            response = await self.sender.send_plain_text(text)
        except Exception as exc:
            logger.error(
                "stream.edit_failed",
                chat_id=self.sender.chat_id,
                message_id=self.sender.message_id,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return

        if response is None:
            logger.warning(
                "stream.edit_failed",
                chat_id=self.sender.chat_id,
                message_id=self.sender.message_id,
                error="no response",
            )
            return

        if response.rate_limited:
            retry_after = response.retry_after
            if retry_after is not None and retry_after > 0:
                self.state.suppressed_until = self.clock() + retry_after
                logger.info(
                    "stream.suppressed",
                    chat_id=self.sender.chat_id,
                    retry_after=retry_after,
                )
                return

        self.state.suppressed_until = None
        if response.ok:
            self.sender.update(message_id=response.message_id)
            return
        if not response.rate_limited:
            logger.warning(
                "stream.edit_rejected",
                chat_id=self.sender.chat_id,
                message_id=self.sender.message_id,
                status=response.status,
                description=response.description,
            )
