"""Contratos e estruturas de dados compartilhadas no domínio do Vigia."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar

GENRES_PENDING = "pending"
GENRES_UNSPECIFIED = "unspecified"
AUTHOR_UNKNOWN = "unknown"


@dataclass(slots=True)
class Listing:
    """Entrada do catálogo de jogos gratuitos."""

    id: str
    title: str
    url: str
    update_date: str
    description: str = ""
    genres: list[str] = field(default_factory=lambda: [GENRES_PENDING])
    author: str = AUTHOR_UNKNOWN
    publish_date: str = ""

    @property
    def genres_pending(self) -> bool:
        return GENRES_PENDING in self.genres


@dataclass(slots=True)
class PromotionListing:
    """Oferta gratuita da loja, válida apenas dentro da janela informada."""

    id: str
    title: str
    namespace: str
    description: str
    url: str
    start_date: str
    end_date: str
    image_url: str | None = None
    original_price: str | None = None
    publisher: str | None = None
    developer: str | None = None


@dataclass(slots=True)
class PaginationCursor:
    """Cursor de paginação transitório de um destinatário."""

    items: Sequence[Listing]
    current_index: int = 0

    @property
    def total_pages(self) -> int:
        return len(self.items)

    @property
    def current(self) -> Listing | None:
        if 0 <= self.current_index < len(self.items):
            return self.items[self.current_index]
        return None


@dataclass(slots=True)
class SendOptions:
    """Opções repassadas ao transporte ao enviar ou editar mensagens."""

    parse_mode: str | None = "HTML"
    disable_web_page_preview: bool = False
    reply_markup: Mapping[str, Any] | None = None
    message_thread_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "disable_web_page_preview": self.disable_web_page_preview,
        }
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode
        if self.reply_markup is not None:
            payload["reply_markup"] = dict(self.reply_markup)
        if self.message_thread_id is not None:
            payload["message_thread_id"] = self.message_thread_id
        return payload


@dataclass(slots=True)
class IncomingMessage:
    """Mensagem de texto recebida pelo bot."""

    chat_id: int
    text: str
    chat_type: str = "private"
    chat_title: str | None = None
    sender_name: str | None = None
    sender_username: str | None = None
    message_thread_id: int | None = None
    topic_name: str | None = None


@dataclass(slots=True)
class CallbackQuery:
    """Clique em um botão inline."""

    id: str
    chat_id: int | None
    message_id: int | None
    data: str | None


@dataclass(slots=True)
class EnrichmentReport:
    """Contagem agregada de uma rodada de enriquecimento."""

    succeeded: int = 0
    failed: int = 0


@dataclass(slots=True)
class CheckReport:
    """Resultado de uma verificação de novidades em uma fonte."""

    source: str
    total: int
    new: Sequence[Any] = field(default_factory=tuple)


class Clock(Protocol):
    """Interface para abstrair o acesso ao relógio do sistema."""

    def now(self) -> datetime:
        """Retorna o instante atual (com fuso)."""

    def local_now(self) -> datetime:
        """Retorna o instante atual no fuso local configurado."""


class MessageTransport(Protocol):
    """Interface mínima do transporte de mensagens."""

    async def send_message(
        self, chat_id: int, text: str, options: SendOptions | None = None
    ) -> Mapping[str, Any]:
        """Envia uma nova mensagem."""

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        options: SendOptions | None = None,
    ) -> Mapping[str, Any]:
        """Edita uma mensagem já enviada."""

    async def answer_callback_query(
        self, callback_id: str, *, text: str | None = None, show_alert: bool = False
    ) -> None:
        """Confirma o recebimento de um callback."""


class ListingSource(Protocol):
    """Fonte de entradas do catálogo de jogos gratuitos."""

    async def fetch_listings(
        self, *, limit: int = 10, page_number: int | None = None
    ) -> list[Listing]:
        """Busca e extrai entradas da página informada."""


class PromotionSource(Protocol):
    """Fonte de ofertas gratuitas da loja."""

    async def extract_currently_free(self) -> list[PromotionListing]:
        """Retorna as ofertas gratuitas vigentes."""


T = TypeVar("T")


class KnownSet(Protocol, Generic[T]):
    """Mapa persistido identidade -> entidade."""

    def contains(self, item_id: str) -> bool:
        """Indica se a identidade já é conhecida."""

    def upsert_all(self, items: Iterable[T]) -> None:
        """Insere ou substitui entidades pela identidade e persiste."""

    def all(self) -> list[T]:
        """Retorna todas as entidades conhecidas."""


__all__ = (
    "AUTHOR_UNKNOWN",
    "CallbackQuery",
    "CheckReport",
    "Clock",
    "EnrichmentReport",
    "GENRES_PENDING",
    "GENRES_UNSPECIFIED",
    "IncomingMessage",
    "KnownSet",
    "Listing",
    "ListingSource",
    "MessageTransport",
    "PaginationCursor",
    "PromotionListing",
    "PromotionSource",
    "SendOptions",
)
