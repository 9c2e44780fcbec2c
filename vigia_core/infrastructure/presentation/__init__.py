"""Formatação e paginação das mensagens do bot."""

from .formatting import format_listing, format_promotion
from .pagination import PaginationPresenter, PaginationSessionStore, build_keyboard

__all__ = [
    "PaginationPresenter",
    "PaginationSessionStore",
    "build_keyboard",
    "format_listing",
    "format_promotion",
]
