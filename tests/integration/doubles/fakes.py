"""Fontes, transporte e relógio falsos para montar o bot sem rede."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from vigia_core.domain.contracts import SendOptions
from vigia_core.domain.errors import FetchError


class RecordingLogger:
    """Logger mínimo que guarda ``(nível, evento, payload)``."""

    def __init__(self, name: str = "vigia") -> None:
        self.name = name
        self.calls: list[tuple[str, str, dict[str, object]]] = []

    def _record(self, level: str, message: str, extra: dict[str, object] | None) -> None:
        self.calls.append((level, message, dict((extra or {}).get("extra", {}))))

    def debug(self, message: str, *, extra: dict[str, object] | None = None) -> None:
        self._record("debug", message, extra)

    def info(self, message: str, *, extra: dict[str, object] | None = None) -> None:
        self._record("info", message, extra)

    def warning(self, message: str, *, extra: dict[str, object] | None = None) -> None:
        self._record("warning", message, extra)

    def error(self, message: str, *, extra: dict[str, object] | None = None) -> None:
        self._record("error", message, extra)

    def exception(self, message: str, *, extra: dict[str, object] | None = None) -> None:
        self._record("exception", message, extra)

    def getChild(self, suffix: str) -> "RecordingLogger":
        return self

    def events(self, level: str | None = None) -> list[str]:
        return [message for lvl, message, _ in self.calls if level is None or lvl == level]


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def local_now(self) -> datetime:
        return self._now


class FakePageFetcher:
    """Responde ``fetch_text``/``fetch_json`` a partir de mapas por URL.

    URLs desconhecidas geram ``FetchError`` com status 404.
    """

    def __init__(
        self,
        pages: Mapping[str, str | Exception] | None = None,
        payloads: Mapping[str, Any] | None = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.payloads = dict(payloads or {})
        self.requested: list[str] = []

    async def fetch_text(self, url: str, *, timeout: float | None = None) -> str:
        self.requested.append(url)
        outcome = self.pages.get(url)
        if outcome is None:
            raise FetchError(f"HTTP 404 em {url}", status_code=404)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fetch_json(
        self,
        url: str,
        *,
        params: Mapping[str, object] | None = None,
        timeout: float | None = None,
    ) -> Any:
        self.requested.append(url)
        outcome = self.payloads.get(url)
        if outcome is None:
            raise FetchError(f"HTTP 503 em {url}", status_code=503)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingTransport:
    """Transporte de mensagens que grava as chamadas e entrega updates enfileirados."""

    def __init__(self, batches: list[list[Mapping[str, Any]] | Exception] | None = None) -> None:
        self.batches = list(batches or [])
        self.sent: list[tuple[int, str, SendOptions | None]] = []
        self.edits: list[tuple[int, int, str]] = []
        self.answers: list[str] = []
        self.offsets: list[int | None] = []
        self.on_poll: Any = None

    async def send_message(
        self, chat_id: int, text: str, options: SendOptions | None = None
    ) -> Mapping[str, Any]:
        self.sent.append((chat_id, text, options))
        return {"message_id": len(self.sent)}

    async def edit_message_text(
        self, chat_id: int, message_id: int, text: str, options: SendOptions | None = None
    ) -> Mapping[str, Any]:
        self.edits.append((chat_id, message_id, text))
        return {"message_id": message_id}

    async def answer_callback_query(
        self, callback_id: str, *, text: str | None = None, show_alert: bool = False
    ) -> None:
        self.answers.append(callback_id)

    async def get_updates(
        self, *, offset: int | None = None, timeout: int = 25
    ) -> list[Mapping[str, Any]]:
        self.offsets.append(offset)
        if self.on_poll is not None:
            self.on_poll()
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch

    def texts(self, chat_id: int | None = None) -> list[str]:
        return [text for chat, text, _ in self.sent if chat_id is None or chat == chat_id]


async def settle(rounds: int = 20) -> None:
    """Cede o loop algumas vezes para tasks em segundo plano terminarem."""

    for _ in range(rounds):
        await asyncio.sleep(0)


__all__ = [
    "FakePageFetcher",
    "FixedClock",
    "RecordingLogger",
    "RecordingTransport",
    "settle",
]
