from collections.abc import Callable

import pytest

from chatrelay.config import LLMConfig, RelaySettings
from chatrelay.context import WorkerContext
from tests.fakes import FakeBot, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_bot(clock: FakeClock) -> FakeBot:
    return FakeBot(clock=clock)


@pytest.fixture
def make_context(fake_bot: FakeBot) -> Callable[..., WorkerContext]:
    def _factory(**overrides) -> WorkerContext:
        settings = RelaySettings(
            llm=LLMConfig(provider="openai", api_key="sk-test"), **overrides
        )
        return WorkerContext(bot=fake_bot, settings=settings)

    return _factory
