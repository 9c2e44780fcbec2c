"""Paginação de uma entrada por página com teclado inline de navegação."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from logging import Logger
from typing import Any

from vigia_core.domain.contracts import CallbackQuery, Listing, PaginationCursor, SendOptions
from vigia_core.infrastructure.delivery.delivery_engine import (
    MESSAGE_LIMIT,
    DeliveryEngine,
    fit_message,
)
from vigia_core.infrastructure.presentation.formatting import (
    DESCRIPTION_PREVIEW,
    format_listing,
    format_listing_plain,
    page_footer,
)

PAGE_PREFIX = "page_"
PAGE_INFO = "page_info"
PREVIOUS_LABEL = "◀️ Anterior"
NEXT_LABEL = "Próximo ▶️"
EMPTY_MESSAGE = "❌ Nenhum jogo encontrado"
EXPIRED_MESSAGE = "❌ Sessão expirada. Use /games para carregar a lista novamente."
CALLBACK_ERROR_MESSAGE = "Ocorreu um erro"


class PaginationSessionStore:
    """Cursores de paginação por destinatário, mantidos apenas em memória."""

    def __init__(self) -> None:
        self._cursors: dict[int, PaginationCursor] = {}

    def open(self, chat_id: int, items: Sequence[Listing], index: int = 0) -> PaginationCursor:
        cursor = PaginationCursor(items=list(items), current_index=index)
        self._cursors[chat_id] = cursor
        return cursor

    def get(self, chat_id: int) -> PaginationCursor | None:
        return self._cursors.get(chat_id)

    def jump(self, chat_id: int, index: int) -> PaginationCursor | None:
        """Move o cursor para ``index``; fora do intervalo não altera nada."""

        cursor = self._cursors.get(chat_id)
        if cursor is None or not 0 <= index < cursor.total_pages:
            return None
        cursor.current_index = index
        return cursor


def build_keyboard(index: int, total: int) -> dict[str, Any]:
    buttons: list[dict[str, str]] = []
    if index > 0:
        buttons.append({"text": PREVIOUS_LABEL, "callback_data": f"{PAGE_PREFIX}{index - 1}"})
    buttons.append({"text": f"{index + 1}/{total}", "callback_data": PAGE_INFO})
    if index < total - 1:
        buttons.append({"text": NEXT_LABEL, "callback_data": f"{PAGE_PREFIX}{index + 1}"})
    return {"inline_keyboard": [buttons]}


def parse_page_callback(data: str | None) -> int | None:
    if not data or data == PAGE_INFO or not data.startswith(PAGE_PREFIX):
        return None
    try:
        return int(data[len(PAGE_PREFIX):])
    except ValueError:
        return None


class PaginationPresenter:
    """Mostra listas de jogos uma entrada por vez, editando a mensagem no lugar."""

    def __init__(
        self,
        delivery: DeliveryEngine,
        sessions: PaginationSessionStore,
        *,
        logger: Logger,
        description_limit: int | None = DESCRIPTION_PREVIEW,
        message_limit: int = MESSAGE_LIMIT,
    ) -> None:
        self._delivery = delivery
        self._sessions = sessions
        self._logger = logger
        self._description_limit = description_limit
        self._message_limit = message_limit

    @property
    def sessions(self) -> PaginationSessionStore:
        return self._sessions

    def render(self, cursor: PaginationCursor) -> str:
        listing = cursor.current
        if listing is None:
            return EMPTY_MESSAGE
        footer = page_footer(cursor.current_index, cursor.total_pages)

        def _render(description: str) -> str:
            trimmed = replace(listing, description=description)
            body = format_listing(trimmed, description_limit=self._description_limit)
            return f"{body}\n\n{footer}"

        return fit_message(_render, listing.description, self._message_limit)

    def render_plain(self, cursor: PaginationCursor) -> str:
        listing = cursor.current
        if listing is None:
            return EMPTY_MESSAGE
        return format_listing_plain(
            listing, page_footer(cursor.current_index, cursor.total_pages)
        )

    def options_for(self, cursor: PaginationCursor) -> SendOptions:
        return SendOptions(
            parse_mode="HTML",
            disable_web_page_preview=False,
            reply_markup=build_keyboard(cursor.current_index, cursor.total_pages),
        )

    async def show(self, chat_id: int, items: Sequence[Listing], index: int = 0) -> bool:
        if not items:
            return await self._delivery.send(chat_id, EMPTY_MESSAGE, SendOptions(parse_mode=None))

        cursor = self._sessions.open(chat_id, items, index)
        text = self.render(cursor)
        self._logger.info(
            "pagination.show",
            extra={"extra": {"chat_id": chat_id, "pages": cursor.total_pages, "length": len(text)}},
        )
        return await self._delivery.send_with_fallback(
            chat_id,
            text,
            self.render_plain(cursor),
            self.options_for(cursor),
            max_attempts=5,
        )

    async def navigate(self, query: CallbackQuery) -> bool:
        """Trata um clique de navegação; retorna ``True`` se a mensagem mudou."""

        if query.chat_id is None or query.message_id is None or not query.data:
            return False
        await self._delivery.answer_callback(query.id)

        cursor = self._sessions.get(query.chat_id)
        if cursor is None:
            await self._delivery.send(query.chat_id, EXPIRED_MESSAGE, SendOptions(parse_mode=None))
            return False

        target = parse_page_callback(query.data)
        if target is None:
            return False
        cursor = self._sessions.jump(query.chat_id, target)
        if cursor is None:
            self._logger.info(
                "pagination.out_of_range",
                extra={"extra": {"chat_id": query.chat_id, "page": target}},
            )
            return False

        return await self._delivery.edit(
            query.chat_id, query.message_id, self.render(cursor), self.options_for(cursor)
        )

    async def report_failure(self, query: CallbackQuery) -> None:
        await self._delivery.answer_callback(
            query.id, text=CALLBACK_ERROR_MESSAGE, show_alert=True
        )


__all__ = [
    "PaginationPresenter",
    "PaginationSessionStore",
    "build_keyboard",
    "parse_page_callback",
]
