"""Transporte de mensagens sobre a Bot API do Telegram via ``httpx``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from vigia_core.domain.contracts import CallbackQuery, IncomingMessage, SendOptions
from vigia_core.domain.errors import DeliveryError, ErrorKind

DEFAULT_API_URL = "https://api.telegram.org"
NOT_MODIFIED_MARKER = "message is not modified"

_TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def classify_failure(status_code: int | None, description: str) -> ErrorKind:
    """Converte a resposta de erro da Bot API em um ``ErrorKind``."""

    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 400:
        if NOT_MODIFIED_MARKER in description.lower():
            return ErrorKind.NOT_MODIFIED
        return ErrorKind.VALIDATION
    return ErrorKind.OTHER


class TelegramBotTransport:
    """Cliente mínimo da Bot API: envio, edição, callbacks e long polling."""

    def __init__(
        self,
        client: Any,
        *,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 20.0,
    ) -> None:
        if not token:
            raise ValueError("Token do bot não pode ser vazio")
        self._client = client
        self._base = f"{api_url.rstrip('/')}/bot{token}"
        self._timeout = timeout

    async def call(
        self,
        method: str,
        payload: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self._base}/{method}"
        try:
            response = await self._client.post(
                url,
                json=dict(payload or {}),
                timeout=timeout if timeout is not None else self._timeout,
            )
        except _TRANSIENT_EXCEPTIONS as exc:
            raise DeliveryError(
                f"Falha de rede ao chamar {method}",
                kind=ErrorKind.TRANSIENT_NETWORK,
                cause=exc,
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise DeliveryError(f"Falha ao chamar {method}", cause=exc) from exc

        status = int(getattr(response, "status_code", 200))
        try:
            body = response.json()
        except ValueError as exc:
            raise DeliveryError(
                f"Resposta inválida de {method}",
                kind=classify_failure(status, "") if status >= 400 else ErrorKind.OTHER,
                status_code=status,
                cause=exc,
            ) from exc

        if not isinstance(body, Mapping):
            body = {}
        if status >= 400 or not body.get("ok", False):
            error_code = body.get("error_code")
            code = int(error_code) if isinstance(error_code, int) else status
            description = str(body.get("description") or f"HTTP {status}")
            retry_after = (body.get("parameters") or {}).get("retry_after")
            raise DeliveryError(
                f"{method} rejeitado: {description}",
                kind=classify_failure(code, description),
                status_code=code,
                retry_after=float(retry_after) if retry_after is not None else None,
            )
        return body.get("result")

    async def send_message(
        self, chat_id: int, text: str, options: SendOptions | None = None
    ) -> Mapping[str, Any]:
        payload = {"chat_id": chat_id, "text": text, **(options or SendOptions()).to_payload()}
        return await self.call("sendMessage", payload)

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        options: SendOptions | None = None,
    ) -> Mapping[str, Any]:
        payload = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            **(options or SendOptions()).to_payload(),
        }
        payload.pop("message_thread_id", None)
        return await self.call("editMessageText", payload)

    async def answer_callback_query(
        self, callback_id: str, *, text: str | None = None, show_alert: bool = False
    ) -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_id}
        if text:
            payload["text"] = text
            payload["show_alert"] = show_alert
        await self.call("answerCallbackQuery", payload)

    async def get_updates(
        self, *, offset: int | None = None, timeout: int = 25
    ) -> list[Mapping[str, Any]]:
        payload: dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "callback_query"],
        }
        if offset is not None:
            payload["offset"] = offset
        result = await self.call("getUpdates", payload, timeout=timeout + 10)
        return [item for item in result or [] if isinstance(item, Mapping)]


def _sender_name(sender: Mapping[str, Any]) -> str | None:
    parts = [sender.get("first_name"), sender.get("last_name")]
    name = " ".join(str(part) for part in parts if part)
    return name or None


def parse_update(update: Mapping[str, Any]) -> IncomingMessage | CallbackQuery | None:
    """Converte um update da Bot API em evento de entrada (ou ``None``)."""

    query = update.get("callback_query")
    if isinstance(query, Mapping):
        message = query.get("message") or {}
        chat = message.get("chat") or {}
        return CallbackQuery(
            id=str(query.get("id")),
            chat_id=chat.get("id"),
            message_id=message.get("message_id"),
            data=query.get("data"),
        )

    message = update.get("message")
    if not isinstance(message, Mapping) or not isinstance(message.get("text"), str):
        return None

    chat = message.get("chat") or {}
    sender = message.get("from") or {}
    topic = (message.get("reply_to_message") or {}).get("forum_topic_created") or {}
    return IncomingMessage(
        chat_id=int(chat["id"]),
        text=message["text"],
        chat_type=str(chat.get("type") or "private"),
        chat_title=chat.get("title"),
        sender_name=_sender_name(sender),
        sender_username=sender.get("username"),
        message_thread_id=message.get("message_thread_id"),
        topic_name=topic.get("name"),
    )


def next_offset(updates: Sequence[Mapping[str, Any]], current: int | None) -> int | None:
    ids = [item["update_id"] for item in updates if isinstance(item.get("update_id"), int)]
    if not ids:
        return current
    return max(ids) + 1


__all__ = [
    "DEFAULT_API_URL",
    "TelegramBotTransport",
    "classify_failure",
    "next_offset",
    "parse_update",
]
