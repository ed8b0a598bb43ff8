from .api_models import Chat, File, Message, PhotoSize, User
from .client import BotClient, TelegramClient, TelegramResponse
from .sender import MessageSender

__all__ = [
    "BotClient",
    "Chat",
    "File",
    "Message",
    "MessageSender",
    "PhotoSize",
    "TelegramClient",
    "TelegramResponse",
    "User",
]
