from __future__ import annotations

import msgspec

__all__ = [
    "Chat",
    "File",
    "Message",
    "PhotoSize",
    "User",
]


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str


class PhotoSize(msgspec.Struct, forbid_unknown_fields=False):
    file_id: str
    file_unique_id: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    chat: Chat
    message_thread_id: int | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    text: str | None = None
    caption: str | None = None
    photo: list[PhotoSize] | None = None


class File(msgspec.Struct, forbid_unknown_fields=False):
    file_id: str
    file_path: str | None = None
    file_size: int | None = None
