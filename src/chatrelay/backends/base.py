"""Backend protocol shared by the model gateway and its implementations."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Protocol

from ..model import ChatMessage


class ChatBackendError(RuntimeError):
    pass


class ChatBackend(Protocol):
    name: str
    model: str

    def stream(self, messages: Sequence[ChatMessage]) -> AsyncIterator[str]:
        """Yield answer deltas in generation order."""
        ...
