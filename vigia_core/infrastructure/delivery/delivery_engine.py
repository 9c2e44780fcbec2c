"""Entrega de mensagens com tentativas limitadas e backoff por tipo de erro."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from logging import Logger
from typing import Any

from vigia_core.domain.contracts import MessageTransport, SendOptions
from vigia_core.domain.errors import DeliveryError, ErrorKind
from vigia_core.infrastructure.normalizers.text_cleaner import clip

MESSAGE_LIMIT = 4096
FIT_MARGIN = 100
TRUNCATION_SUFFIX = "…"

SleepFunc = Callable[[float], Awaitable[Any]]


def backoff_for(kind: ErrorKind, attempt: int) -> float | None:
    """Espera antes da próxima tentativa ou ``None`` para desistir."""

    if kind is ErrorKind.VALIDATION:
        return None
    if kind in (ErrorKind.RATE_LIMITED, ErrorKind.TRANSIENT_NETWORK):
        return attempt * 2.0
    return attempt * 1.0


def fit_message(
    render: Callable[[str], str], description: str, limit: int = MESSAGE_LIMIT
) -> str:
    """Encurta a descrição até que a mensagem renderizada caiba em ``limit``.

    ``render`` recebe a descrição (possivelmente cortada) e devolve o texto
    final. Se nem a descrição vazia couber, o texto é cortado no limite.
    """

    text = render(description)
    if len(text) <= limit:
        return text

    budget = max(len(description) - (len(text) - limit) - FIT_MARGIN, 0)
    while True:
        text = render(description[:budget])
        if len(text) <= limit or budget == 0:
            break
        budget = max(budget - (len(text) - limit) - FIT_MARGIN, 0)
    return clip(text, limit, ellipsis=TRUNCATION_SUFFIX)


class DeliveryEngine:
    """Envia e edita mensagens sem nunca propagar falhas do transporte."""

    def __init__(
        self,
        transport: MessageTransport,
        *,
        logger: Logger,
        sleep: SleepFunc = asyncio.sleep,
        notification_chat_id: int | None = None,
        notification_topic_id: int | None = None,
        message_limit: int = MESSAGE_LIMIT,
    ) -> None:
        self._transport = transport
        self._logger = logger
        self._sleep = sleep
        self._notification_chat_id = notification_chat_id
        self._notification_topic_id = notification_topic_id
        self._message_limit = message_limit

    @property
    def notification_chat_id(self) -> int | None:
        return self._notification_chat_id

    def route(self, chat_id: int, options: SendOptions | None) -> SendOptions:
        """Aplica o tópico configurado às mensagens do chat de notificações."""

        resolved = options or SendOptions()
        if (
            resolved.message_thread_id is None
            and self._notification_topic_id
            and self._notification_chat_id is not None
            and chat_id == self._notification_chat_id
        ):
            resolved = replace(resolved, message_thread_id=self._notification_topic_id)
        return resolved

    async def send(
        self,
        chat_id: int,
        text: str,
        options: SendOptions | None = None,
        max_attempts: int = 3,
    ) -> bool:
        final_options = self.route(chat_id, options)
        if len(text) > self._message_limit:
            self._logger.warning(
                "delivery.clipped",
                extra={"extra": {"chat_id": chat_id, "length": len(text)}},
            )
            text = clip(text, self._message_limit, ellipsis=TRUNCATION_SUFFIX)

        for attempt in range(1, max_attempts + 1):
            try:
                await self._transport.send_message(chat_id, text, final_options)
                return True
            except DeliveryError as exc:
                kind, status = exc.kind, exc.status_code
                error = str(exc)
            except Exception as exc:  # noqa: BLE001 - o envio nunca propaga
                kind, status = ErrorKind.OTHER, None
                error = repr(exc)

            payload = {
                "chat_id": chat_id,
                "attempt": attempt,
                "max_attempts": max_attempts,
                "kind": kind.value,
                "status_code": status,
                "error": error,
            }
            wait = backoff_for(kind, attempt)
            if wait is None:
                self._logger.error("delivery.rejected", extra={"extra": payload})
                return False
            if attempt >= max_attempts:
                self._logger.error("delivery.exhausted", extra={"extra": payload})
                return False
            self._logger.warning("delivery.retry", extra={"extra": {**payload, "wait": wait}})
            await self._sleep(wait)
        return False

    async def send_with_fallback(
        self,
        chat_id: int,
        rich_text: str,
        plain_text: str,
        options: SendOptions | None = None,
        max_attempts: int = 5,
    ) -> bool:
        """Tenta a versão formatada e, se falhar, uma única versão em texto puro."""

        if await self.send(chat_id, rich_text, options, max_attempts):
            return True

        plain_options = replace(options or SendOptions(), parse_mode=None)
        self._logger.warning("delivery.plain_fallback", extra={"extra": {"chat_id": chat_id}})
        if await self.send(chat_id, plain_text, plain_options, max_attempts=1):
            return True

        self._logger.error("delivery.gave_up", extra={"extra": {"chat_id": chat_id}})
        return False

    async def edit(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        options: SendOptions | None = None,
    ) -> bool:
        """Atualiza a mensagem no lugar; "não modificada" conta como sucesso."""

        text = clip(text, self._message_limit, ellipsis=TRUNCATION_SUFFIX)
        try:
            await self._transport.edit_message_text(chat_id, message_id, text, options)
        except DeliveryError as exc:
            if exc.kind is ErrorKind.NOT_MODIFIED:
                return True
            self._logger.warning(
                "delivery.edit_failed",
                extra={
                    "extra": {
                        "chat_id": chat_id,
                        "message_id": message_id,
                        "kind": exc.kind.value,
                        "error": str(exc),
                    }
                },
            )
            return False
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "delivery.edit_failed",
                extra={
                    "extra": {
                        "chat_id": chat_id,
                        "message_id": message_id,
                        "error": repr(exc),
                    }
                },
            )
            return False
        return True

    async def answer_callback(
        self, callback_id: str, *, text: str | None = None, show_alert: bool = False
    ) -> bool:
        try:
            await self._transport.answer_callback_query(
                callback_id, text=text, show_alert=show_alert
            )
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "delivery.callback_answer_failed",
                extra={"extra": {"callback_id": callback_id, "error": repr(exc)}},
            )
            return False
        return True


__all__ = ["DeliveryEngine", "MESSAGE_LIMIT", "backoff_for", "fit_message"]
