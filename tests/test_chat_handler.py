from collections.abc import Callable

import pytest

from chatrelay import chat
from chatrelay.chat import ChatHandler
from chatrelay.images import ImageUploadError
from chatrelay.telegram.api_models import File, PhotoSize
from tests.fakes import FakeBot, ScriptBackend, make_message

PHOTOS = [
    PhotoSize(file_id="small", width=90),
    PhotoSize(file_id="medium", width=320),
    PhotoSize(file_id="large", width=1280),
]


@pytest.fixture
def backend(monkeypatch) -> ScriptBackend:
    backend = ScriptBackend(["seen"])
    monkeypatch.setattr(chat, "load_chat_llm", lambda _cfg, client=None: backend)
    return backend


@pytest.mark.anyio
async def test_text_message_is_forwarded(
    backend: ScriptBackend, make_context: Callable
) -> None:
    await ChatHandler().handle(make_message("what is up"), make_context())

    user = backend.calls[0][-1]
    assert user.role == "user"
    assert user.content == "what is up"
    assert user.images == ()


@pytest.mark.anyio
async def test_caption_used_when_text_missing(
    backend: ScriptBackend, make_context: Callable
) -> None:
    await ChatHandler().handle(
        make_message(None, caption="describe this"), make_context()
    )

    assert backend.calls[0][-1].content == "describe this"


@pytest.mark.anyio
async def test_photo_resolved_with_offset(
    backend: ScriptBackend, fake_bot: FakeBot, make_context: Callable
) -> None:
    fake_bot.files["large"] = File(file_id="large", file_path="photos/large.jpg")

    await ChatHandler().handle(
        make_message(None, caption="look", photo=PHOTOS),
        make_context(photo_size_offset=-1),
    )

    assert backend.calls[0][-1].images == (
        "https://api.telegram.org/file/botTOKEN/photos/large.jpg",
    )


@pytest.mark.anyio
async def test_photo_without_file_path_is_dropped(
    backend: ScriptBackend, fake_bot: FakeBot, make_context: Callable
) -> None:
    fake_bot.files["medium"] = File(file_id="medium")

    await ChatHandler().handle(
        make_message("look", photo=PHOTOS), make_context(photo_size_offset=1)
    )

    assert backend.calls[0][-1].images == ()


@pytest.mark.anyio
async def test_photo_uploaded_when_telegraph_enabled(
    monkeypatch, backend: ScriptBackend, fake_bot: FakeBot, make_context: Callable
) -> None:
    fake_bot.files["medium"] = File(file_id="medium", file_path="photos/m.jpg")
    uploaded: list[str] = []

    async def _upload(url: str, *, client=None) -> str:
        uploaded.append(url)
        return "https://telegra.ph/file/abc.jpg"

    monkeypatch.setattr(chat, "upload_image_to_telegraph", _upload)

    await ChatHandler().handle(
        make_message("look", photo=PHOTOS), make_context(telegraph_enable=True)
    )

    assert uploaded == ["https://api.telegram.org/file/botTOKEN/photos/m.jpg"]
    assert backend.calls[0][-1].images == ("https://telegra.ph/file/abc.jpg",)


@pytest.mark.anyio
async def test_upload_failure_falls_back_to_file_url(
    monkeypatch, backend: ScriptBackend, fake_bot: FakeBot, make_context: Callable
) -> None:
    fake_bot.files["medium"] = File(file_id="medium", file_path="photos/m.jpg")

    async def _upload(url: str, *, client=None) -> str:
        raise ImageUploadError("telegra.ph down")

    monkeypatch.setattr(chat, "upload_image_to_telegraph", _upload)

    await ChatHandler().handle(
        make_message("look", photo=PHOTOS), make_context(telegraph_enable=True)
    )

    assert backend.calls[0][-1].images == (
        "https://api.telegram.org/file/botTOKEN/photos/m.jpg",
    )
