"""Extração das ofertas gratuitas vigentes da loja com estratégias em cascata.

As estratégias rodam em ordem e a próxima só é tentada quando a anterior
falha ou não encontra nada:

1. endpoint JSON de promoções;
2. estado JSON embutido na página de jogos gratuitos;
3. cartões de oferta do DOM da mesma página.
"""

from __future__ import annotations

import json
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime
from logging import Logger
from typing import Any

from selectolax.parser import Node

from vigia_core.domain.contracts import Clock, PromotionListing, PromotionSource
from vigia_core.domain.errors import ExtractionMismatch
from vigia_core.infrastructure.http.httpx_fetcher import HttpxPageFetcher
from vigia_core.infrastructure.normalizers.text_cleaner import clip
from vigia_core.infrastructure.normalizers.url_normalizer import offer_slug_from_href
from vigia_core.infrastructure.parsing.html_document import (
    attribute,
    node_text,
    parse_document,
)
from vigia_core.infrastructure.promotions.offers import (
    FALLBACK_TITLE,
    dig,
    is_currently_free,
    next_rotation_end,
    parse_instant,
    promotions_from_elements,
    to_iso,
)

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500

PRIMARY_CARD_SELECTOR = '[data-component="FreeOfferCard"]'
ALTERNATE_CARD_SELECTORS: Sequence[str] = (
    '[data-testid="offer-card"]',
    'a[href*="/p/"][aria-label*="Сейчас бесплатно"]',
    'a[href*="/p/"][aria-label*="Бесплатно"]',
    'a[href*="/p/"][aria-label*="Free Now"]',
)

_STATE_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(r"window\.__INITIAL_STATE__\s*=\s*(\{.+?\});?\s*</script>", re.DOTALL),
    re.compile(r"window\.__APOLLO_STATE__\s*=\s*(\{.+?\});?\s*</script>", re.DOTALL),
)
_JSON_SCRIPT_MARKERS: Sequence[str] = ("Catalog", "searchStore", "elements")


class LazyPage:
    """Baixa a página de jogos gratuitos no máximo uma vez por extração."""

    def __init__(self, load: Callable[[], Awaitable[str]]) -> None:
        self._load = load
        self._markup: str | None = None

    async def markup(self) -> str:
        if self._markup is None:
            self._markup = await self._load()
        return self._markup


Strategy = Callable[[datetime, LazyPage], Awaitable[list[PromotionListing]]]


def find_catalog_elements(payload: object) -> list[Any] | None:
    """Localiza a lista de elementos do catálogo em um estado JSON arbitrário."""

    if not isinstance(payload, Mapping):
        return None
    for path in (
        ("data", "Catalog", "searchStore", "elements"),
        ("Catalog", "searchStore", "elements"),
        ("searchStore", "elements"),
        ("elements",),
    ):
        found = dig(payload, *path)
        if isinstance(found, list):
            return found
    for value in payload.values():
        if isinstance(value, list):
            return value
        if isinstance(value, Mapping) and isinstance(value.get("elements"), list):
            return value["elements"]
    return None


def parse_catalog_payload(
    payload: object, now: datetime, *, store_url: str, language: str
) -> list[PromotionListing]:
    elements = dig(payload, "data", "Catalog", "searchStore", "elements")
    if not isinstance(elements, list):
        raise ExtractionMismatch("Payload de promoções sem data.Catalog.searchStore.elements")
    return promotions_from_elements(elements, now, store_url=store_url, language=language)


def extract_embedded_state(markup: str) -> object | None:
    for pattern in _STATE_PATTERNS:
        match = pattern.search(markup)
        if not match:
            continue
        try:
            return json.loads(match.group(1))
        except ValueError:
            continue

    document = parse_document(markup)
    for script in document.css('script[type="application/json"]'):
        content = script.text(deep=True)
        if not any(marker in content for marker in _JSON_SCRIPT_MARKERS):
            continue
        try:
            return json.loads(content)
        except ValueError:
            continue
    return None


def parse_embedded_state(
    markup: str, now: datetime, *, store_url: str, language: str
) -> list[PromotionListing]:
    state = extract_embedded_state(markup)
    if state is None:
        return []
    elements = find_catalog_elements(state)
    if not elements:
        return []
    return promotions_from_elements(elements, now, store_url=store_url, language=language)


def _card_link(card: Node) -> Node | None:
    if card.tag == "a" and "/p/" in attribute(card, "href"):
        return card
    return card.css_first('a[href*="/p/"]')


def _card_title(card: Node, link: Node) -> str:
    title = node_text(link.css_first("h6") or card.css_first("h6"))
    if title:
        return title
    parts = [part.strip() for part in attribute(link, "aria-label").split(",")]
    if len(parts) >= 4 and parts[3]:
        return parts[3]
    return node_text(card.css_first("h3")) or FALLBACK_TITLE


def _card_end_date(card: Node, now: datetime) -> datetime:
    stamps = card.css("time[datetime]")
    if stamps:
        parsed = parse_instant(attribute(stamps[-1], "datetime"))
        if parsed is not None:
            return parsed
    return next_rotation_end(now)


def _card_image(card: Node) -> str | None:
    image = card.css_first("img[data-image]")
    if image is not None:
        return attribute(image, "data-image") or attribute(image, "src") or None
    image = card.css_first("img")
    if image is not None:
        return attribute(image, "src") or None
    return None


def _card_to_promotion(
    card: Node, now: datetime, *, store_url: str
) -> PromotionListing | None:
    link = _card_link(card)
    if link is None:
        return None
    href = attribute(link, "href")
    slug = offer_slug_from_href(href)
    if not slug:
        return None

    url = href if href.startswith("http") else f"{store_url.rstrip('/')}{href}"
    return PromotionListing(
        id=slug,
        title=clip(_card_title(card, link), TITLE_MAX_LENGTH),
        namespace=slug,
        description=clip(node_text(card.css_first("p")), DESCRIPTION_MAX_LENGTH),
        url=url,
        start_date=to_iso(now),
        end_date=to_iso(_card_end_date(card, now)),
        image_url=_card_image(card),
    )


def parse_offer_cards(
    markup: str, now: datetime, *, store_url: str
) -> list[PromotionListing]:
    document = parse_document(markup)
    cards = document.css(PRIMARY_CARD_SELECTOR)
    if not cards:
        for selector in ALTERNATE_CARD_SELECTORS:
            cards = document.css(selector)
            if cards:
                break

    promotions: list[PromotionListing] = []
    seen: set[str] = set()
    for card in cards:
        promotion = _card_to_promotion(card, now, store_url=store_url)
        if promotion is None or promotion.id in seen:
            continue
        seen.add(promotion.id)
        promotions.append(promotion)
    return promotions


class PromotionExtractor(PromotionSource):
    """Fonte de ofertas gratuitas que nunca propaga falhas de extração."""

    def __init__(
        self,
        *,
        fetcher: HttpxPageFetcher,
        clock: Clock,
        logger: Logger,
        api_url: str,
        store_url: str,
        locale: str = "ru",
        country: str = "RU",
        language: str = "ru",
        timeout: float = 20.0,
    ) -> None:
        self._fetcher = fetcher
        self._clock = clock
        self._logger = logger
        self._api_url = api_url
        self._store_url = store_url.rstrip("/")
        self._locale = locale
        self._country = country
        self._language = language
        self._timeout = timeout

    @property
    def free_games_url(self) -> str:
        return f"{self._store_url}/{self._language}/free-games"

    def strategies(self) -> list[tuple[str, Strategy]]:
        return [
            ("catalog_api", self._from_catalog_api),
            ("embedded_state", self._from_embedded_state),
            ("offer_cards", self._from_offer_cards),
        ]

    async def extract_currently_free(self) -> list[PromotionListing]:
        now = self._clock.now()
        page = LazyPage(self._fetch_free_games_page)
        for name, strategy in self.strategies():
            try:
                found = await strategy(now, page)
            except Exception as exc:  # noqa: BLE001 - cai para a próxima estratégia
                self._logger.warning(
                    "promotions.strategy_failed",
                    extra={"extra": {"strategy": name, "error": repr(exc)}},
                )
                continue

            active = [item for item in found if is_currently_free(item, now)]
            if active:
                self._logger.info(
                    "promotions.extracted",
                    extra={"extra": {"strategy": name, "count": len(active)}},
                )
                return active
            self._logger.info(
                "promotions.strategy_empty", extra={"extra": {"strategy": name}}
            )

        self._logger.warning("promotions.none_found", extra={"extra": {}})
        return []

    async def _from_catalog_api(
        self, now: datetime, page: LazyPage
    ) -> list[PromotionListing]:
        payload = await self._fetcher.fetch_json(
            self._api_url,
            params={
                "locale": self._locale,
                "country": self._country,
                "allowCountries": self._country,
            },
            timeout=self._timeout,
        )
        return parse_catalog_payload(
            payload, now, store_url=self._store_url, language=self._language
        )

    async def _fetch_free_games_page(self) -> str:
        return await self._fetcher.fetch_text(self.free_games_url, timeout=self._timeout)

    async def _from_embedded_state(
        self, now: datetime, page: LazyPage
    ) -> list[PromotionListing]:
        markup = await page.markup()
        return parse_embedded_state(
            markup, now, store_url=self._store_url, language=self._language
        )

    async def _from_offer_cards(
        self, now: datetime, page: LazyPage
    ) -> list[PromotionListing]:
        markup = await page.markup()
        return parse_offer_cards(markup, now, store_url=self._store_url)


__all__ = [
    "LazyPage",
    "PromotionExtractor",
    "extract_embedded_state",
    "find_catalog_elements",
    "parse_catalog_payload",
    "parse_embedded_state",
    "parse_offer_cards",
]
