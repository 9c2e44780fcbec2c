"""Utilitários de parsing HTML baseados em selectolax."""

from __future__ import annotations

from collections.abc import Iterable

from selectolax.parser import HTMLParser, Node

from vigia_core.domain.errors import ExtractionMismatch
from vigia_core.infrastructure.normalizers.text_cleaner import collapse_whitespace


def parse_document(markup: str) -> HTMLParser:
    try:
        return HTMLParser(markup or "")
    except Exception as exc:  # noqa: BLE001
        raise ExtractionMismatch(
            "Não foi possível inicializar o parser HTML", cause=exc
        ) from exc


def node_text(node: Node | None, *, collapse: bool = True) -> str:
    """Texto do nó (vazio quando ``node`` é ``None``)."""

    if node is None:
        return ""
    text = node.text(deep=True)
    return collapse_whitespace(text) if collapse else text.strip()


def attribute(node: Node | None, name: str) -> str:
    if node is None:
        return ""
    value = node.attributes.get(name)
    return (value or "").strip()


def first_match(node: Node | HTMLParser, selectors: Iterable[str]) -> Node | None:
    """Primeiro nó encontrado percorrendo os seletores em ordem."""

    for selector in selectors:
        found = node.css_first(selector)
        if found is not None:
            return found
    return None


def closest(node: Node | None, tag: str, css_class: str | None = None) -> Node | None:
    current = node.parent if node is not None else None
    while current is not None:
        if current.tag == tag:
            classes = (current.attributes.get("class") or "").split()
            if css_class is None or css_class in classes:
                return current
        current = current.parent
    return None


__all__ = ["attribute", "closest", "first_match", "node_text", "parse_document"]
