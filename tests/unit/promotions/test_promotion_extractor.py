from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from vigia_core.domain.errors import FetchError
from vigia_core.infrastructure.promotions.promotion_extractor import (
    PromotionExtractor,
    find_catalog_elements,
    parse_embedded_state,
    parse_offer_cards,
)

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
STORE = "https://store.epicgames.com"


def _element(percentage: int, element_id: str = "abc") -> dict[str, Any]:
    return {
        "id": element_id,
        "title": f"Jogo {element_id}",
        "productSlug": f"slug-{element_id}",
        "promotions": {
            "promotionalOffers": [
                {
                    "promotionalOffers": [
                        {
                            "startDate": "2024-01-04T16:00:00.000Z",
                            "endDate": "2024-01-11T16:00:00.000Z",
                            "discountSetting": {
                                "discountType": "PERCENTAGE",
                                "discountPercentage": percentage,
                            },
                        }
                    ]
                }
            ]
        },
    }


def _api_payload(*elements: dict[str, Any]) -> dict[str, Any]:
    return {"data": {"Catalog": {"searchStore": {"elements": list(elements)}}}}


_CARDS_PAGE = """
<html><body>
<div data-component="FreeOfferCard">
  <a href="/ru/p/card-game" aria-label="Бесплатные игры, Сейчас бесплатно, 1, Card Game Aria, 11.01">
    <img data-image="https://img/card.png" src="https://img/fallback.png">
    <h6>Card Game</h6>
    <p>Descrição curta</p>
    <time datetime="2024-01-04T16:00:00.000Z"></time>
    <time datetime="2024-01-11T16:00:00.000Z"></time>
  </a>
</div>
<div data-component="FreeOfferCard">
  <a href="/ru/p/aria-game" aria-label="Бесплатные игры, Сейчас бесплатно, 2, Aria Game">
    <img src="https://img/aria.png">
  </a>
</div>
</body></html>
"""


class _ClockStub:
    def now(self) -> datetime:
        return NOW

    def local_now(self) -> datetime:
        return NOW


class _LoggerStub:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def info(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)

    def warning(self, message: str, *, extra: dict[str, object]) -> None:
        self.messages.append(message)


class _FetcherStub:
    def __init__(self, *, payload: Any = None, page: str | Exception = "") -> None:
        self._payload = payload
        self._page = page
        self.json_calls: list[Mapping[str, object] | None] = []
        self.text_calls: list[str] = []

    async def fetch_json(self, url: str, *, params: Mapping[str, object] | None = None, timeout: float | None = None) -> Any:
        self.json_calls.append(params)
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def fetch_text(self, url: str, *, timeout: float | None = None) -> str:
        self.text_calls.append(url)
        if isinstance(self._page, Exception):
            raise self._page
        return self._page


def _extractor(fetcher: _FetcherStub, logger: _LoggerStub | None = None) -> PromotionExtractor:
    return PromotionExtractor(
        fetcher=fetcher,
        clock=_ClockStub(),
        logger=logger or _LoggerStub(),
        api_url="https://api/freeGamesPromotions",
        store_url=STORE,
    )


def test_find_catalog_elements_checks_known_paths() -> None:
    assert find_catalog_elements({"Catalog": {"searchStore": {"elements": [1]}}}) == [1]
    assert find_catalog_elements({"searchStore": {"elements": [2]}}) == [2]
    assert find_catalog_elements({"elements": [3]}) == [3]
    assert find_catalog_elements({"qualquer": {"elements": [4]}}) == [4]
    assert find_catalog_elements({"lista": [5]}) == [5]
    assert find_catalog_elements({"nada": 1}) is None


def test_parse_embedded_state_from_initial_state_script() -> None:
    state = json.dumps({"Catalog": {"searchStore": {"elements": [_element(0), _element(50, "xyz")]}}})
    markup = f"<html><script>window.__INITIAL_STATE__ = {state};</script></html>"

    promotions = parse_embedded_state(markup, NOW, store_url=STORE, language="ru")

    assert [promotion.id for promotion in promotions] == ["abc"]


def test_parse_embedded_state_from_json_script_tag() -> None:
    state = json.dumps({"searchStore": {"elements": [_element(0)]}})
    markup = f'<html><script type="application/json">{state}</script></html>'

    promotions = parse_embedded_state(markup, NOW, store_url=STORE, language="ru")

    assert [promotion.url for promotion in promotions] == [f"{STORE}/ru/p/slug-abc"]


def test_parse_offer_cards_reads_dom_fallbacks() -> None:
    first, second = parse_offer_cards(_CARDS_PAGE, NOW, store_url=STORE)

    assert first.id == "card-game"
    assert first.title == "Card Game"
    assert first.url == f"{STORE}/ru/p/card-game"
    assert first.image_url == "https://img/card.png"
    assert first.description == "Descrição curta"
    assert first.start_date == "2024-01-10T12:00:00.000Z"
    assert first.end_date == "2024-01-11T16:00:00.000Z"

    assert second.title == "Aria Game"
    assert second.image_url == "https://img/aria.png"
    assert second.end_date == "2024-01-11T17:00:00.000Z"


def test_parse_offer_cards_uses_alternate_selectors() -> None:
    markup = '<a href="/ru/p/alt" aria-label="Free Now, Free Now, 1, Alt Game"><h6>Alt</h6></a>'

    promotions = parse_offer_cards(markup, NOW, store_url=STORE)

    assert [promotion.id for promotion in promotions] == ["alt"]


def test_extract_prefers_structured_source() -> None:
    fetcher = _FetcherStub(payload=_api_payload(_element(0), _element(50, "xyz")))

    promotions = asyncio.run(_extractor(fetcher).extract_currently_free())

    assert [promotion.id for promotion in promotions] == ["abc"]
    assert fetcher.json_calls == [{"locale": "ru", "country": "RU", "allowCountries": "RU"}]
    assert fetcher.text_calls == []


def test_extract_falls_back_to_dom_fetching_page_once() -> None:
    fetcher = _FetcherStub(payload=FetchError("falha"), page=_CARDS_PAGE)

    promotions = asyncio.run(_extractor(fetcher).extract_currently_free())

    assert [promotion.id for promotion in promotions] == ["card-game", "aria-game"]
    assert fetcher.text_calls == [f"{STORE}/ru/free-games"]


def test_extract_never_raises_and_returns_empty() -> None:
    logger = _LoggerStub()
    fetcher = _FetcherStub(payload={"unexpected": True}, page=FetchError("offline"))

    promotions = asyncio.run(_extractor(fetcher, logger).extract_currently_free())

    assert promotions == []
    assert logger.messages.count("promotions.strategy_failed") == 3
    assert logger.messages[-1] == "promotions.none_found"


class _SlowPagesFetcher:
    def __init__(self, pages: list[str]) -> None:
        self._pages = pages
        self.text_calls = 0

    async def fetch_json(self, url: str, *, params: Mapping[str, object] | None = None, timeout: float | None = None) -> Any:
        raise FetchError("api fora do ar")

    async def fetch_text(self, url: str, *, timeout: float | None = None) -> str:
        page = self._pages[self.text_calls]
        self.text_calls += 1
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return page


def test_overlapping_extractions_keep_their_own_page() -> None:
    other_page = """
    <div data-component="FreeOfferCard">
      <a href="/ru/p/other-game"><h6>Other Game</h6></a>
    </div>
    """
    fetcher = _SlowPagesFetcher([_CARDS_PAGE, other_page])
    extractor = _extractor(fetcher)

    async def _both() -> list[list[str]]:
        results = await asyncio.gather(
            extractor.extract_currently_free(), extractor.extract_currently_free()
        )
        return [[promotion.id for promotion in found] for found in results]

    assert asyncio.run(_both()) == [["card-game", "aria-game"], ["other-game"]]
    assert fetcher.text_calls == 2
