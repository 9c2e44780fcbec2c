"""Fonte de entradas do catálogo de jogos gratuitos via HTTP."""

from __future__ import annotations

from logging import Logger

from vigia_core.domain.contracts import Listing, ListingSource
from vigia_core.infrastructure.http.httpx_fetcher import HttpxPageFetcher
from vigia_core.infrastructure.scraping.listing_extractor import ListingExtractor


class FreewareCatalogScraper(ListingSource):
    """Busca a página do catálogo e delega a extração ao ``ListingExtractor``.

    A paginação do catálogo é feita por segmento de caminho: a primeira
    página é a raiz do site e as seguintes ficam em ``/page/<n>``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        fetcher: HttpxPageFetcher,
        extractor: ListingExtractor,
        logger: Logger,
        timeout: float = 15.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._fetcher = fetcher
        self._extractor = extractor
        self._logger = logger
        self._timeout = timeout

    def page_url(self, page_number: int | None = None) -> str:
        if page_number and page_number > 1:
            return f"{self._base_url}/page/{page_number}"
        return self._base_url

    async def fetch_listings(
        self, *, limit: int = 10, page_number: int | None = None
    ) -> list[Listing]:
        url = self.page_url(page_number)
        self._logger.info("catalog.fetch", extra={"extra": {"url": url, "limit": limit}})
        markup = await self._fetcher.fetch_text(url, timeout=self._timeout)
        return self._extractor.extract(markup, limit)


__all__ = ["FreewareCatalogScraper"]
