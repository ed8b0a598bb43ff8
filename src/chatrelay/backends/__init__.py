from .base import ChatBackend, ChatBackendError
from .openai_compat import OpenAICompatibleBackend

__all__ = [
    "ChatBackend",
    "ChatBackendError",
    "OpenAICompatibleBackend",
]
