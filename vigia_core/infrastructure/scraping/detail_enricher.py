"""Enriquecimento assíncrono das entradas com os gêneros da página de detalhe.

O enriquecimento roda desacoplado da resposta principal: quem dispara
``start`` não espera o término, e leitores podem ver ``["pending"]`` até que
o callback de conclusão grave os gêneros definitivos.
"""

from __future__ import annotations

import asyncio
import inspect
import re
from collections.abc import Awaitable, Callable, Sequence
from logging import Logger
from typing import Any

from vigia_core.domain.contracts import GENRES_UNSPECIFIED, EnrichmentReport, Listing
from vigia_core.domain.errors import FetchError
from vigia_core.infrastructure.http.httpx_fetcher import HttpxPageFetcher
from vigia_core.infrastructure.normalizers.text_cleaner import (
    collapse_whitespace,
    strip_html_comments,
)
from vigia_core.infrastructure.parsing.html_document import parse_document

CompletionCallback = Callable[[Sequence[Listing]], Awaitable[Any] | Any]
SleepFunc = Callable[[float], Awaitable[Any]]

_RE_GENRE_LABEL = re.compile(r"(?:жанр|genre)\s*:\s*", re.IGNORECASE)
_RE_GENRE_TERMINATOR = re.compile(r"\.|<!--")
_RE_GENRE_FALLBACK = re.compile(
    r"(?:жанр|genre)[:\s]+([^<.]+?)(?:\.|<!--|$)", re.IGNORECASE | re.DOTALL
)


def _split_genres(text: str) -> list[str]:
    genres: list[str] = []
    for token in text.split(","):
        cleaned = collapse_whitespace(token)
        if cleaned and not cleaned.startswith("<!--"):
            genres.append(cleaned)
    return genres


def parse_genres(markup: str) -> list[str]:
    """Extrai a lista de gêneros da página de detalhe (vazia se ausente)."""

    document = parse_document(markup)
    for paragraph in document.css("p"):
        text = paragraph.text(deep=True)
        label = _RE_GENRE_LABEL.search(text)
        if not label:
            continue
        remainder = text[label.end():]
        terminator = _RE_GENRE_TERMINATOR.search(remainder)
        if terminator:
            remainder = remainder[: terminator.start()]
        genres = _split_genres(strip_html_comments(remainder))
        if genres:
            return genres

    container = document.css_first("div.maincont")
    if container is not None:
        match = _RE_GENRE_FALLBACK.search(container.text(deep=True))
        if match:
            genres = _split_genres(match.group(1))
            if genres:
                return genres
    return []


class DetailEnricher:
    """Busca gêneros de várias entradas em paralelo, com início escalonado."""

    def __init__(
        self,
        *,
        fetcher: HttpxPageFetcher,
        logger: Logger,
        sleep: SleepFunc = asyncio.sleep,
        stagger_delay: float = 0.1,
        max_attempts: int = 2,
        retry_backoff: float = 0.5,
        timeout: float = 20.0,
    ) -> None:
        self._fetcher = fetcher
        self._logger = logger
        self._sleep = sleep
        self._stagger_delay = stagger_delay
        self._max_attempts = max_attempts
        self._retry_backoff = retry_backoff
        self._timeout = timeout
        self._background: set[asyncio.Task[EnrichmentReport]] = set()

    def start(
        self, listings: Sequence[Listing], on_complete: CompletionCallback | None = None
    ) -> asyncio.Task[EnrichmentReport]:
        """Dispara o enriquecimento em segundo plano e retorna a task."""

        task = asyncio.create_task(self.run(listings, on_complete))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    async def run(
        self, listings: Sequence[Listing], on_complete: CompletionCallback | None = None
    ) -> EnrichmentReport:
        self._logger.info("enrich.start", extra={"extra": {"count": len(listings)}})
        results = await asyncio.gather(
            *(self._enrich_one(listing, index) for index, listing in enumerate(listings)),
            return_exceptions=True,
        )

        report = EnrichmentReport()
        for outcome in results:
            if outcome is True:
                report.succeeded += 1
            else:
                report.failed += 1
        self._logger.info(
            "enrich.finish",
            extra={"extra": {"succeeded": report.succeeded, "failed": report.failed}},
        )

        if on_complete is not None:
            result = on_complete(listings)
            if inspect.isawaitable(result):
                await result
        return report

    async def fetch_genres(self, url: str) -> list[str]:
        attempt = 1
        while True:
            try:
                markup = await self._fetcher.fetch_text(url, timeout=self._timeout)
                break
            except FetchError as exc:
                if not exc.is_transient or attempt >= self._max_attempts:
                    raise
                wait = self._retry_backoff * attempt
                self._logger.warning(
                    "enrich.retry",
                    extra={
                        "extra": {
                            "url": url,
                            "attempt": attempt,
                            "wait": wait,
                            "error": str(exc),
                        }
                    },
                )
                await self._sleep(wait)
                attempt += 1

        return parse_genres(markup) or [GENRES_UNSPECIFIED]

    async def _enrich_one(self, listing: Listing, index: int) -> bool:
        if index > 0:
            await self._sleep(self._stagger_delay * index)
        try:
            listing.genres = await self.fetch_genres(listing.url)
        except Exception as exc:  # noqa: BLE001 - falha isolada por entrada
            listing.genres = [GENRES_UNSPECIFIED]
            self._logger.error(
                "enrich.item_failed",
                extra={
                    "extra": {
                        "id": listing.id,
                        "url": listing.url,
                        "error": str(exc),
                    }
                },
            )
            return False
        self._logger.info(
            "enrich.item_done",
            extra={"extra": {"id": listing.id, "genres": listing.genres}},
        )
        return True

    def _on_background_done(self, task: asyncio.Task[EnrichmentReport]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "enrich.background_failed", extra={"extra": {"error": repr(exc)}}
            )


__all__ = ["DetailEnricher", "parse_genres"]
