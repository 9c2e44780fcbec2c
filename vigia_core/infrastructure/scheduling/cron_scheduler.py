"""Agendamento por expressão cron sobre o ``AsyncIOScheduler`` do APScheduler."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from logging import Logger
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

DEFAULT_EXPRESSION = "*/30 * * * * *"
DEFAULT_TIMEZONE = "Europe/Moscow"

_CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_WEEK_ORDER = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
_RE_NUMERIC_PART = re.compile(r"^(\*|\d+)(?:-(\d+))?(?:/(\d+))?$")


def crontab_day_of_week(field: str) -> str:
    """Converte o campo de dia da semana do crontab para o APScheduler.

    No crontab a semana começa no domingo (0 ou 7); no APScheduler, na
    segunda-feira. Faixas e passos numéricos são expandidos em nomes de dias
    e partes já escritas com nomes seguem como estão.
    """

    if field == "*":
        return field

    days: set[int] = set()
    named: list[str] = []
    for part in field.split(","):
        match = _RE_NUMERIC_PART.match(part)
        if match is None:
            named.append(part)
            continue
        start, end, step = match.groups()
        if start == "*":
            first, last = 0, 6
        else:
            first = int(start)
            last = int(end) if end is not None else (6 if step else first)
        increment = int(step or 1)
        if increment < 1 or first > last or last > 7:
            raise ValueError(f"Dia da semana inválido: {part}")
        days.update(value % 7 for value in range(first, last + 1, increment))

    if not named and len(days) == 7:
        return "*"
    numeric = [name for name in _WEEK_ORDER if _CRON_DAY_NAMES.index(name) in days]
    return ",".join([*numeric, *named])


def build_trigger(expression: str, timezone: Any = DEFAULT_TIMEZONE) -> CronTrigger:
    """Monta um ``CronTrigger`` a partir de 5 ou 6 campos (segundos primeiro)."""

    fields = expression.split()
    if len(fields) == 5:
        fields = ["0", *fields]
    if len(fields) != 6:
        raise ValueError(
            f"Expressão cron inválida '{expression}': esperados 5 ou 6 campos"
        )
    second, minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=crontab_day_of_week(day_of_week),
        timezone=timezone,
    )


class CronScheduler:
    """Registra jobs assíncronos disparados por expressões cron."""

    def __init__(
        self,
        *,
        logger: Logger,
        timezone: Any = DEFAULT_TIMEZONE,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._logger = logger
        self._timezone = timezone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def schedule(
        self,
        expression: str,
        job: Callable[[], Awaitable[Any]],
        *,
        job_id: str,
    ) -> None:
        trigger = build_trigger(expression, self._timezone)
        self._scheduler.add_job(
            job,
            trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._logger.info(
            "scheduler.job_added",
            extra={
                "extra": {
                    "job_id": job_id,
                    "expression": expression,
                    "timezone": str(self._timezone),
                }
            },
        )

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            self._logger.info("scheduler.started", extra={"extra": {}})

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            self._logger.info("scheduler.stopped", extra={"extra": {}})


__all__ = [
    "CronScheduler",
    "DEFAULT_EXPRESSION",
    "DEFAULT_TIMEZONE",
    "build_trigger",
    "crontab_day_of_week",
]
