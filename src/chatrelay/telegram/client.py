from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import msgspec

from ..logging import get_logger
from .api_models import File

logger = get_logger(__name__)

RATE_LIMITED = 429

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


def _retry_after_from_header(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(int(value.strip()))
    except ValueError:
        return None


def _retry_after_from_payload(payload: dict[str, Any]) -> float | None:
    params = payload.get("parameters")
    if isinstance(params, dict):
        retry_after = params.get("retry_after")
        if isinstance(retry_after, (int, float)) and not isinstance(
            retry_after, bool
        ):
            return float(retry_after)
    description = payload.get("description")
    if isinstance(description, str):
        match = _RETRY_AFTER_RE.search(description)
        if match:
            return float(match.group(1))
    return None


@dataclass(slots=True)
class TelegramResponse:
    """Status, headers and decoded body of one Bot API call."""

    method: str
    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    payload: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        self.headers = httpx.Headers(self.headers)

    @property
    def ok(self) -> bool:
        return (
            200 <= self.status < 300
            and self.payload is not None
            and bool(self.payload.get("ok"))
        )

    @property
    def rate_limited(self) -> bool:
        return self.status == RATE_LIMITED

    @property
    def retry_after(self) -> float | None:
        """Advertised retry delay in seconds, if any."""
        from_header = _retry_after_from_header(self.headers.get("Retry-After"))
        if from_header is not None:
            return from_header
        if self.payload is not None:
            return _retry_after_from_payload(self.payload)
        return None

    @property
    def result(self) -> Any:
        if self.payload is None:
            return None
        return self.payload.get("result")

    @property
    def message_id(self) -> int | None:
        result = self.result
        if not isinstance(result, dict):
            return None
        message_id = result.get("message_id")
        return message_id if isinstance(message_id, int) else None

    @property
    def description(self) -> str | None:
        if self.payload is None:
            return None
        description = self.payload.get("description")
        return description if isinstance(description, str) else None

    def json(self) -> dict[str, Any] | None:
        return self.payload


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
        message_thread_id: int | None = None,
    ) -> TelegramResponse | None: ...

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: str | None = None,
    ) -> TelegramResponse | None: ...

    async def send_chat_action(
        self,
        chat_id: int,
        action: str = "typing",
        message_thread_id: int | None = None,
    ) -> TelegramResponse | None: ...

    async def get_file(self, file_id: str) -> File | None: ...

    def file_url(self, file_path: str) -> str: ...


class TelegramClient:
    def __init__(
        self,
        token: str,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
        api_domain: str = "https://api.telegram.org",
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{api_domain}/bot{token}"
        self._file_base = f"{api_domain}/file/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(
        self, method: str, json_data: dict[str, Any]
    ) -> TelegramResponse | None:
        logger.debug("telegram.request", method=method, payload=json_data)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=json_data)
        except httpx.HTTPError as e:
            try:
                url = e.request.url
            except RuntimeError:
                url = None
            logger.error(
                "telegram.network_error",
                method=method,
                url=str(url) if url is not None else None,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return None

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        response = TelegramResponse(
            method=method,
            status=resp.status_code,
            headers=resp.headers,
            payload=payload if isinstance(payload, dict) else None,
        )

        if response.rate_limited:
            logger.info(
                "telegram.rate_limited",
                method=method,
                status=response.status,
                retry_after=response.retry_after,
            )
            return response

        if not response.ok:
            logger.error(
                "telegram.http_error" if resp.is_error else "telegram.api_error",
                method=method,
                status=response.status,
                description=response.description,
                body=resp.text if payload is None else None,
            )
            return response

        logger.debug("telegram.response", method=method, payload=payload)
        return response

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
        parse_mode: str | None = None,
        message_thread_id: int | None = None,
    ) -> TelegramResponse | None:
        params: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
        }
        if reply_to_message_id is not None:
            params["reply_to_message_id"] = reply_to_message_id
        if parse_mode is not None:
            params["parse_mode"] = parse_mode
        if message_thread_id is not None:
            params["message_thread_id"] = message_thread_id
        return await self._post("sendMessage", params)

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: str | None = None,
    ) -> TelegramResponse | None:
        params: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
        }
        if parse_mode is not None:
            params["parse_mode"] = parse_mode
        return await self._post("editMessageText", params)

    async def send_chat_action(
        self,
        chat_id: int,
        action: str = "typing",
        message_thread_id: int | None = None,
    ) -> TelegramResponse | None:
        params: dict[str, Any] = {"chat_id": chat_id, "action": action}
        if message_thread_id is not None:
            params["message_thread_id"] = message_thread_id
        return await self._post("sendChatAction", params)

    async def get_file(self, file_id: str) -> File | None:
        response = await self._post("getFile", {"file_id": file_id})
        if response is None or not response.ok:
            return None
        try:
            return msgspec.convert(response.result, File)
        except msgspec.ValidationError as e:
            logger.error(
                "telegram.invalid_payload",
                method="getFile",
                error=str(e),
                payload=response.result,
            )
            return None

    def file_url(self, file_path: str) -> str:
        return f"{self._file_base}/{file_path}"
