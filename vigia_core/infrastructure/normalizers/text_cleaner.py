"""Rotinas utilitárias para higienizar textos extraídos do HTML."""

from __future__ import annotations

import re
from html import escape

_RE_WHITESPACE = re.compile(r"\s+")
_RE_HTML_COMMENT = re.compile(r"<!--.*?(?:-->|$)", re.DOTALL)


def collapse_whitespace(text: str | None) -> str:
    """Troca ``&nbsp;`` e sequências de espaços por um único espaço."""

    value = (text or "").replace("&nbsp;", " ").replace("\xa0", " ")
    return _RE_WHITESPACE.sub(" ", value).strip()


def strip_html_comments(text: str | None) -> str:
    return _RE_HTML_COMMENT.sub("", text or "")


def clip(text: str | None, limit: int | None, *, ellipsis: str = "") -> str:
    """Corta ``text`` em ``limit`` caracteres, incluindo o sufixo opcional."""

    value = text or ""
    if limit is None or len(value) <= limit:
        return value
    if limit <= len(ellipsis):
        return value[: max(limit, 0)]
    return value[: limit - len(ellipsis)] + ellipsis


def escape_html(text: str | None) -> str:
    """Escapa texto para o modo de formatação HTML do transporte."""

    return escape(text or "", quote=True)


__all__ = ["clip", "collapse_whitespace", "escape_html", "strip_html_comments"]
