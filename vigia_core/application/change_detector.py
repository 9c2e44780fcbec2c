"""Detecção de novidades por identidade contra o known-set persistido."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

from vigia_core.domain.contracts import KnownSet

T = TypeVar("T")


class ChangeDetector:
    """Seleciona os candidatos cuja identidade ainda não é conhecida.

    A comparação é apenas por ``id``: uma entrada conhecida com campos
    alterados não é considerada nova. A persistência fica com o chamador.
    """

    def diff_new(self, candidates: Iterable[T], known: KnownSet[Any]) -> list[T]:
        return [item for item in candidates if not known.contains(getattr(item, "id"))]


__all__ = ["ChangeDetector"]
