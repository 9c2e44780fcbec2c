"""Normalização de datas textuais para exibição.

As datas do catálogo nunca viram ``datetime`` de fato: o texto é apenas
ajustado por padrões conhecidos. ``recency_key`` oferece uma chave de
ordenação de melhor esforço sobre esses textos.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from vigia_core.domain.contracts import Clock

_RE_ABSOLUTE = re.compile(r"(\d{1,2}-\d{1,2}-\d{4},\s*\d{1,2}:\d{1,2})")
_RE_YESTERDAY = re.compile(r"(?:Вчера|Yesterday|Ontem),\s*(\d{1,2}:\d{1,2})", re.IGNORECASE)

DISPLAY_DATE_FORMAT = "%d.%m.%Y"
DISPLAY_TIMESTAMP_FORMAT = "%d.%m.%Y, %H:%M:%S"

_SORTABLE_FORMATS: tuple[str, ...] = (
    "%d-%m-%Y, %H:%M",
    "%d.%m.%Y, %H:%M",
    "%d.%m.%Y, %H:%M:%S",
    "%d-%m-%Y",
    "%d.%m.%Y",
)


class DateTextNormalizer:
    """Ajusta textos de data do catálogo a um formato estável de exibição."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock

    def normalize(self, value: str | None) -> str:
        text = (value or "").strip()
        if not text:
            return self._clock.local_now().strftime(DISPLAY_TIMESTAMP_FORMAT)

        match = _RE_ABSOLUTE.search(text)
        if match:
            return match.group(1)

        match = _RE_YESTERDAY.search(text)
        if match:
            yesterday = self._clock.local_now() - timedelta(days=1)
            return f"{yesterday.strftime(DISPLAY_DATE_FORMAT)}, {match.group(1)}"

        return text

    def find_in(self, text: str) -> str | None:
        """Procura uma data de publicação dentro de um texto maior."""

        match = _RE_ABSOLUTE.search(text or "")
        if match:
            return match.group(1)
        match = _RE_YESTERDAY.search(text or "")
        if match:
            return match.group(0)
        return None


def recency_key(value: str | None) -> float:
    """Chave de ordenação de melhor esforço (maior = mais recente).

    Textos que não casam com nenhum formato conhecido recebem ``0.0`` e vão
    para o fim de uma ordenação decrescente.
    """

    text = (value or "").strip()
    if not text:
        return 0.0
    match = _RE_ABSOLUTE.search(text)
    if match:
        text = re.sub(r",\s*", ", ", match.group(1))
    for pattern in _SORTABLE_FORMATS:
        try:
            return datetime.strptime(text, pattern).timestamp()
        except ValueError:
            continue
    return 0.0


__all__ = ["DateTextNormalizer", "recency_key"]
