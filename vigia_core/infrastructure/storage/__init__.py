"""Persistência local dos known-sets em arquivos JSON."""

from .json_known_set import (
    FREEWARE_FILENAME,
    PROMOTIONS_FILENAME,
    FreewareKnownSet,
    JsonKnownSet,
    PromotionKnownSet,
)

__all__ = [
    "FREEWARE_FILENAME",
    "FreewareKnownSet",
    "JsonKnownSet",
    "PROMOTIONS_FILENAME",
    "PromotionKnownSet",
]
