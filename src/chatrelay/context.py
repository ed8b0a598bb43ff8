from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from .config import LLMConfig, RelaySettings
from .telegram.client import BotClient


@dataclass(frozen=True, slots=True)
class WorkerContext:
    """Everything one chat turn needs, resolved before the turn starts.

    `http` is shared by the model backend and the image upload helper; when it
    is None each of them opens and closes its own client.
    """

    bot: BotClient
    settings: RelaySettings = field(default_factory=RelaySettings)
    http: httpx.AsyncClient | None = None

    @property
    def user_config(self) -> LLMConfig:
        return self.settings.llm
