"""Extração das ofertas gratuitas vigentes da loja."""

from .offers import find_active_free_offer, has_expired, is_currently_free
from .promotion_extractor import (
    PromotionExtractor,
    parse_catalog_payload,
    parse_embedded_state,
    parse_offer_cards,
)

__all__ = [
    "PromotionExtractor",
    "find_active_free_offer",
    "has_expired",
    "is_currently_free",
    "parse_catalog_payload",
    "parse_embedded_state",
    "parse_offer_cards",
]
