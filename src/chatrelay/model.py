"""Chatrelay domain model types (request params, chat messages, callbacks)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

Role: TypeAlias = Literal["system", "user", "assistant"]


@dataclass(slots=True)
class ChatRequestParams:
    message: str
    images: list[str] | None = None


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: Role
    content: str
    images: tuple[str, ...] = field(default=())


HistoryModifier: TypeAlias = Callable[
    [list[ChatMessage], ChatMessage | None],
    tuple[list[ChatMessage], ChatMessage | None],
]

StreamResultHandler: TypeAlias = Callable[[str], Awaitable[None]]
