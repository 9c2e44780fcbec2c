"""Extração de entradas do catálogo de jogos gratuitos a partir do HTML."""

from __future__ import annotations

import re
from collections.abc import Sequence
from logging import Logger

from selectolax.parser import Node

from vigia_core.domain.contracts import AUTHOR_UNKNOWN, GENRES_PENDING, Listing
from vigia_core.infrastructure.normalizers.date_normalizer import DateTextNormalizer
from vigia_core.infrastructure.normalizers.text_cleaner import clip, collapse_whitespace
from vigia_core.infrastructure.normalizers.url_normalizer import (
    SimpleUrlNormalizer,
    listing_id_from_url,
)
from vigia_core.infrastructure.parsing.html_document import (
    attribute,
    closest,
    first_match,
    node_text,
    parse_document,
)

BLOCK_SELECTOR = "div.base"

HEADER_LINK_SELECTORS: Sequence[str] = (
    "div.header-h1 h1 a",
    "div.header-h1 a",
    ".header-h1 a",
    "h1 a",
)
DETAIL_LINK_SELECTOR = 'a[href*="/po-seti/"], a[href*="/games/"]'

UPDATE_BANNER_SELECTORS: Sequence[str] = (
    'div[style*="background-color: red"]',
    'div[style*="background-color:red"]',
)
DESCRIPTION_SELECTOR = "div.short-story p, div.short-story div.maincont p"
DESCRIPTION_CONTAINER = "div.short-story"
BYLINE_SELECTOR = "p.lcol.argcat"
AUTHOR_LINK_SELECTOR = 'p.lcol.argcat a[href*="/user/"]'

DESCRIPTION_MAX_LENGTH = 500
DESCRIPTION_MIN_LENGTH = 20

_RE_LABEL_LINE = re.compile(
    r"^\s*(Способ|Категория|Автор|Category|Author|Method)", re.IGNORECASE
)
_RE_USER_TOKEN = re.compile(r"user/([^/\s\"']+)")


class ListingExtractor:
    """Converte a página do catálogo em ``Listing`` normalizados.

    Cada bloco candidato é processado de forma isolada: um bloco com
    estrutura inesperada é registrado e ignorado sem interromper os demais.
    """

    def __init__(
        self,
        *,
        url_normalizer: SimpleUrlNormalizer,
        date_normalizer: DateTextNormalizer,
        logger: Logger,
    ) -> None:
        self._url_normalizer = url_normalizer
        self._date_normalizer = date_normalizer
        self._logger = logger

    def extract(self, markup: str, limit: int = 10) -> list[Listing]:
        document = parse_document(markup)
        blocks = document.css(BLOCK_SELECTOR)
        self._logger.info(
            "listing.blocks_found", extra={"extra": {"count": len(blocks)}}
        )

        listings: list[Listing] = []
        for index, block in enumerate(blocks):
            if len(listings) >= limit:
                break
            try:
                listing = self._extract_block(block, index)
            except Exception as exc:  # noqa: BLE001 - um bloco não derruba a página
                self._logger.error(
                    "listing.block_failed",
                    extra={"extra": {"index": index, "error": repr(exc)}},
                )
                continue
            if listing is not None:
                listings.append(listing)

        self._logger.info(
            "listing.extracted", extra={"extra": {"count": len(listings)}}
        )
        return listings

    def _extract_block(self, block: Node, index: int) -> Listing | None:
        title, href = self._resolve_title_and_url(block)
        title = collapse_whitespace(title)
        if not title or not href:
            self._logger.info(
                "listing.block_skipped",
                extra={"extra": {"index": index, "title": title, "url": href}},
            )
            return None

        update_date = self._date_normalizer.normalize(self._update_date_text(block))
        author, publish_date = self._byline(block)

        return Listing(
            id=listing_id_from_url(href, index),
            title=title,
            url=self._url_normalizer.to_absolute(href),
            update_date=update_date,
            description=clip(self._description(block), DESCRIPTION_MAX_LENGTH),
            genres=[GENRES_PENDING],
            author=author,
            publish_date=publish_date or update_date,
        )

    def _resolve_title_and_url(self, block: Node) -> tuple[str, str]:
        header_link = first_match(block, HEADER_LINK_SELECTORS)
        if header_link is None:
            header_div = block.css_first("div.header-h1")
            if header_div is not None:
                header_link = header_div.css_first("a")
        if header_link is not None:
            return node_text(header_link), attribute(header_link, "href")

        detail_link = block.css_first(DETAIL_LINK_SELECTOR)
        if detail_link is not None:
            title = node_text(detail_link)
            if not title:
                title = node_text(closest(detail_link, "div", "header-h1"))
            if not title:
                title = node_text(detail_link.css_first("h1"))
            return title, attribute(detail_link, "href")

        any_link = block.css_first("a")
        if any_link is not None:
            return node_text(any_link) or node_text(any_link.css_first("h1")), attribute(
                any_link, "href"
            )
        return "", ""

    def _update_date_text(self, block: Node) -> str:
        banner = first_match(block, UPDATE_BANNER_SELECTORS)
        if banner is not None:
            text = node_text(banner.css_first("span, p"))
            if text:
                return text
        return node_text(block.css_first('div[style*="red"] span'))

    def _description(self, block: Node) -> str:
        for paragraph in block.css(DESCRIPTION_SELECTOR):
            text = node_text(paragraph)
            if len(text) > DESCRIPTION_MIN_LENGTH and not _RE_LABEL_LINE.match(text):
                return text

        container = block.css_first(DESCRIPTION_CONTAINER)
        if container is None:
            return ""
        raw = container.text(deep=True)
        lines = [line for line in raw.splitlines() if not _RE_LABEL_LINE.match(line)]
        return collapse_whitespace(" ".join(lines))

    def _byline(self, block: Node) -> tuple[str, str | None]:
        byline = block.css_first(BYLINE_SELECTOR)
        byline_text = node_text(byline)
        if not byline_text:
            return AUTHOR_UNKNOWN, None

        author = node_text(block.css_first(AUTHOR_LINK_SELECTOR))
        if not author:
            match = _RE_USER_TOKEN.search(byline.html or "")
            author = match.group(1) if match else ""

        return author or AUTHOR_UNKNOWN, self._date_normalizer.find_in(byline_text)


__all__ = ["ListingExtractor"]
