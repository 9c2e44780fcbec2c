"""Implementação concreta de ``Clock`` baseada no relógio do sistema."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from vigia_core.domain.contracts import Clock


class SystemClock(Clock):
    """Retorna instantes em UTC e no fuso local configurado."""

    def __init__(self, local_timezone: str | tzinfo | None = None) -> None:
        if isinstance(local_timezone, str):
            local_timezone = ZoneInfo(local_timezone)
        self._local_tz = local_timezone

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def local_now(self) -> datetime:
        if self._local_tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._local_tz)
