from __future__ import annotations

import asyncio

from vigia_core.domain.contracts import Listing
from vigia_core.infrastructure.scraping.freeware_catalog import FreewareCatalogScraper


class _LoggerStub:
    def info(self, message: str, *, extra: dict[str, object]) -> None:
        pass


class _FetcherStub:
    def __init__(self) -> None:
        self.calls: list[tuple[str, float | None]] = []

    async def fetch_text(self, url: str, *, timeout: float | None = None) -> str:
        self.calls.append((url, timeout))
        return "<html>catalogo</html>"


class _ExtractorStub:
    def __init__(self) -> None:
        self.received: list[tuple[str, int]] = []

    def extract(self, markup: str, limit: int = 10) -> list[Listing]:
        self.received.append((markup, limit))
        return [Listing(id="1", title="Jogo", url="https://freetp.org/1-jogo", update_date="")]


def _scraper(fetcher: _FetcherStub, extractor: _ExtractorStub) -> FreewareCatalogScraper:
    return FreewareCatalogScraper(
        base_url="https://freetp.org/",
        fetcher=fetcher,
        extractor=extractor,
        logger=_LoggerStub(),
    )


def test_page_url_uses_path_segment_after_first_page() -> None:
    scraper = _scraper(_FetcherStub(), _ExtractorStub())

    assert scraper.page_url() == "https://freetp.org"
    assert scraper.page_url(1) == "https://freetp.org"
    assert scraper.page_url(3) == "https://freetp.org/page/3"


def test_fetch_listings_delegates_to_extractor() -> None:
    fetcher = _FetcherStub()
    extractor = _ExtractorStub()

    listings = asyncio.run(_scraper(fetcher, extractor).fetch_listings(limit=5, page_number=2))

    assert [listing.id for listing in listings] == ["1"]
    assert fetcher.calls == [("https://freetp.org/page/2", 15.0)]
    assert extractor.received == [("<html>catalogo</html>", 5)]
