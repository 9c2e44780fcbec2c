"""Normalização de URLs e derivação de identidades a partir delas."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

_RE_LEADING_ID = re.compile(r"/(\d+)-")
_RE_NON_DIGITS = re.compile(r"\D")
_RE_OFFER_SLUG = re.compile(r"/p/([^/?#]+)")


class SimpleUrlNormalizer:
    """Normaliza URLs relativas usando ``urllib.parse.urljoin``."""

    def __init__(self, *, default_base_url: str | None = None) -> None:
        self._default_base = self._normalize_default_base(default_base_url)

    @property
    def base_origin(self) -> str | None:
        return self._default_base

    def to_absolute(self, url: str, base_url: str | None = None) -> str:
        candidate = (url or "").strip()
        if not candidate:
            raise ValueError("URL não pode ser vazia para normalização")
        if candidate.startswith(("http://", "https://")):
            return candidate

        base_candidate = (base_url or "").strip()
        if base_candidate:
            return urljoin(base_candidate, candidate)
        if self._default_base:
            return urljoin(self._default_base, candidate)
        return candidate

    def _normalize_default_base(self, value: str | None) -> str | None:
        if not value:
            return None
        cleaned = value.strip()
        if not cleaned:
            return None
        parts = urlsplit(cleaned)
        if parts.scheme and parts.netloc:
            return urlunsplit((parts.scheme, parts.netloc, "/", "", ""))
        return cleaned


def listing_id_from_url(url: str, position: int) -> str:
    """Deriva a identidade estável de uma entrada do catálogo.

    Usa o número que antecede o primeiro hífen no caminho (``/123-nome``);
    na falta dele, todos os dígitos da URL; por fim, a posição na página.
    """

    match = _RE_LEADING_ID.search(url or "")
    if match:
        return match.group(1)
    digits = _RE_NON_DIGITS.sub("", url or "")
    if digits:
        return digits
    return f"game-{position}"


def offer_slug_from_href(href: str | None) -> str | None:
    match = _RE_OFFER_SLUG.search(href or "")
    return match.group(1) if match else None


__all__ = ["SimpleUrlNormalizer", "listing_id_from_url", "offer_slug_from_href"]
