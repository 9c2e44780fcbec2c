"""Roteamento dos comandos de chat e dos callbacks de paginação."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import Logger

from vigia_core.application.check_job import CheckNewGamesJob
from vigia_core.application.monitors import FreewareMonitor, PromotionMonitor
from vigia_core.domain.contracts import CallbackQuery, IncomingMessage, SendOptions
from vigia_core.infrastructure.delivery.delivery_engine import DeliveryEngine
from vigia_core.infrastructure.presentation.formatting import (
    HELP_MESSAGE,
    WELCOME_MESSAGE,
    format_chat_info,
    format_promotion,
    format_promotion_plain,
)
from vigia_core.infrastructure.presentation.pagination import PaginationPresenter

_RE_COMMAND = re.compile(r"^/(?P<name>[a-z]+)(?:@\w+)?(?:\s+(?P<argument>.*))?$", re.DOTALL)

PLAIN = SendOptions(parse_mode=None)

INVALID_PAGE_MESSAGE = "❌ O número da página deve ser um inteiro positivo. Exemplo: /games 2"
NO_LISTINGS_MESSAGE = "❌ Nenhum jogo encontrado. Talvez a estrutura do site tenha mudado."
NO_PROMOTIONS_MESSAGE = "😔 Nenhuma oferta gratuita encontrada na loja no momento."
PROMOTIONS_HEADER = "🎁 <b>Jogos grátis na loja agora</b>"


@dataclass(slots=True)
class Command:
    name: str
    argument: str = ""


def parse_command(text: str) -> Command | None:
    match = _RE_COMMAND.match((text or "").strip())
    if not match:
        return None
    return Command(name=match.group("name"), argument=(match.group("argument") or "").strip())


class CommandRouter:
    """Despacha mensagens e callbacks recebidos para os casos de uso."""

    def __init__(
        self,
        *,
        delivery: DeliveryEngine,
        presenter: PaginationPresenter,
        freeware: FreewareMonitor,
        check_job: CheckNewGamesJob,
        logger: Logger,
        promotions: PromotionMonitor | None = None,
        newgames_limit: int = 5,
    ) -> None:
        self._delivery = delivery
        self._presenter = presenter
        self._freeware = freeware
        self._promotions = promotions
        self._check_job = check_job
        self._logger = logger
        self._newgames_limit = newgames_limit
        self._handlers: dict[str, Callable[[IncomingMessage, str], Awaitable[None]]] = {
            "start": self._start,
            "help": self._help,
            "games": self._games,
            "newgames": self._newgames,
            "epic": self._epic,
            "chatid": self._chatid,
        }

    async def dispatch(self, event: IncomingMessage | CallbackQuery) -> None:
        if isinstance(event, CallbackQuery):
            await self.handle_callback(event)
        else:
            await self.handle_message(event)

    async def handle_message(self, message: IncomingMessage) -> bool:
        command = parse_command(message.text)
        if command is None:
            return False
        handler = self._handlers.get(command.name)
        if handler is None:
            return False

        self._logger.info(
            "command.received",
            extra={
                "extra": {
                    "command": command.name,
                    "argument": command.argument,
                    "chat_id": message.chat_id,
                    "user": message.sender_username,
                }
            },
        )
        try:
            await handler(message, command.argument)
        except Exception as exc:  # noqa: BLE001 - o bot continua atendendo
            self._logger.exception(
                "command.failed",
                extra={"extra": {"command": command.name, "error": repr(exc)}},
            )
            await self._delivery.send(
                message.chat_id, f"❌ Erro ao executar /{command.name}: {exc}", PLAIN
            )
        return True

    async def handle_callback(self, query: CallbackQuery) -> None:
        try:
            await self._presenter.navigate(query)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception(
                "callback.failed", extra={"extra": {"data": query.data, "error": repr(exc)}}
            )
            await self._presenter.report_failure(query)

    async def _start(self, message: IncomingMessage, argument: str) -> None:
        await self._delivery.send(message.chat_id, WELCOME_MESSAGE, SendOptions())

    async def _help(self, message: IncomingMessage, argument: str) -> None:
        await self._delivery.send(message.chat_id, HELP_MESSAGE, SendOptions())

    async def _chatid(self, message: IncomingMessage, argument: str) -> None:
        await self._delivery.send(message.chat_id, format_chat_info(message), SendOptions())

    async def _games(self, message: IncomingMessage, argument: str) -> None:
        page_number: int | None = None
        if argument:
            if not argument.isdigit() or int(argument) < 1:
                await self._delivery.send(message.chat_id, INVALID_PAGE_MESSAGE, PLAIN)
                return
            page_number = int(argument)

        loading = (
            f"⏳ Carregando a lista de jogos da página {page_number}..."
            if page_number
            else "⏳ Carregando a lista de jogos..."
        )
        await self._delivery.send(message.chat_id, loading, PLAIN)

        try:
            listings = await self._freeware.browse(page_number)
        except Exception as exc:  # noqa: BLE001 - falha de busca vira lista vazia
            self._logger.error(
                "command.games_fetch_failed",
                extra={"extra": {"page": page_number, "error": repr(exc)}},
            )
            listings = []

        if not listings:
            await self._delivery.send(message.chat_id, NO_LISTINGS_MESSAGE, PLAIN)
            return

        await self._presenter.show(message.chat_id, listings)
        self._freeware.enrich_in_background(listings)

    async def _newgames(self, message: IncomingMessage, argument: str) -> None:
        await self._delivery.send(message.chat_id, "🔍 Verificando novos jogos...", PLAIN)
        await self._check_job.run()

        latest = self._freeware.latest(10)[: self._newgames_limit]
        if not latest:
            await self._delivery.send(
                message.chat_id, "✅ Verificação concluída. Nenhum jogo encontrado.", PLAIN
            )
            return
        await self._delivery.send(
            message.chat_id, "✅ Verificação concluída. Últimos jogos:", SendOptions()
        )
        await self._presenter.show(message.chat_id, latest)

    async def _epic(self, message: IncomingMessage, argument: str) -> None:
        if self._promotions is None:
            await self._delivery.send(message.chat_id, NO_PROMOTIONS_MESSAGE, PLAIN)
            return
        await self._delivery.send(
            message.chat_id, "⏳ Buscando as ofertas gratuitas da loja...", PLAIN
        )
        promotions = await self._promotions.current()
        if not promotions:
            await self._delivery.send(message.chat_id, NO_PROMOTIONS_MESSAGE, PLAIN)
            return

        await self._delivery.send(message.chat_id, PROMOTIONS_HEADER, SendOptions())
        for promotion in promotions:
            await self._delivery.send_with_fallback(
                message.chat_id,
                format_promotion(promotion),
                format_promotion_plain(promotion),
                SendOptions(),
            )


__all__ = ["Command", "CommandRouter", "parse_command"]
