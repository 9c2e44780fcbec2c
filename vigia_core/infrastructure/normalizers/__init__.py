"""Normalizadores de datas, URLs e utilidades de texto."""

from .date_normalizer import DateTextNormalizer, recency_key
from .text_cleaner import clip, collapse_whitespace, escape_html, strip_html_comments
from .url_normalizer import SimpleUrlNormalizer, listing_id_from_url, offer_slug_from_href

__all__ = [
    "DateTextNormalizer",
    "SimpleUrlNormalizer",
    "clip",
    "collapse_whitespace",
    "escape_html",
    "listing_id_from_url",
    "offer_slug_from_href",
    "recency_key",
    "strip_html_comments",
]
