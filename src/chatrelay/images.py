from __future__ import annotations

import httpx
import msgspec

from .logging import get_logger

logger = get_logger(__name__)

TELEGRAPH_UPLOAD_URL = "https://telegra.ph/upload"
TELEGRAPH_HOST = "https://telegra.ph"


class ImageUploadError(RuntimeError):
    pass


class _UploadedFile(msgspec.Struct, forbid_unknown_fields=False):
    src: str


_UPLOAD_DECODER = msgspec.json.Decoder(list[_UploadedFile])


async def upload_image_to_telegraph(
    url: str, *, client: httpx.AsyncClient | None = None, timeout_s: float = 60
) -> str:
    """Re-host an image on telegra.ph and return its public URL."""
    http = client or httpx.AsyncClient(timeout=timeout_s)
    try:
        try:
            source = await http.get(url)
            source.raise_for_status()
            content_type = source.headers.get("content-type", "image/jpeg")
            resp = await http.post(
                TELEGRAPH_UPLOAD_URL,
                files={"file": ("image", source.content, content_type)},
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageUploadError(f"Image upload failed: {e}") from e

        try:
            uploaded = _UPLOAD_DECODER.decode(resp.content)
        except msgspec.DecodeError as e:
            raise ImageUploadError(
                f"Unexpected telegra.ph response: {resp.text}"
            ) from e
        if not uploaded:
            raise ImageUploadError("telegra.ph returned no files")
    finally:
        if client is None:
            await http.aclose()

    hosted = f"{TELEGRAPH_HOST}{uploaded[0].src}"
    logger.debug("image.uploaded", url=hosted)
    return hosted
