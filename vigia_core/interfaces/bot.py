"""Loop de long polling do bot com agendador e redes de segurança."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from logging import Logger
from typing import Any

from vigia_core.application.check_job import CheckNewGamesJob
from vigia_core.application.commands import CommandRouter
from vigia_core.domain.errors import DeliveryError
from vigia_core.infrastructure.scheduling.cron_scheduler import CronScheduler
from vigia_core.infrastructure.telegram.bot_api import (
    TelegramBotTransport,
    next_offset,
    parse_update,
)

CHECK_JOB_ID = "check_new_games"
CONFLICT_STATUS = 409

SleepFunc = Callable[[float], Awaitable[Any]]


class BotApplication:
    """Recebe updates via ``getUpdates`` e despacha cada um em sua própria task.

    Falhas de polling, de processamento de um update e exceções não tratadas
    do loop são registradas sem derrubar o processo.
    """

    def __init__(
        self,
        *,
        transport: TelegramBotTransport,
        router: CommandRouter,
        scheduler: CronScheduler,
        check_job: CheckNewGamesJob,
        check_interval: str,
        logger: Logger,
        poll_timeout: int = 25,
        error_backoff: float = 5.0,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._router = router
        self._scheduler = scheduler
        self._check_job = check_job
        self._check_interval = check_interval
        self._logger = logger
        self._poll_timeout = poll_timeout
        self._error_backoff = error_backoff
        self._sleep = sleep
        self._tasks: set[asyncio.Task[Any]] = set()
        self._offset: int | None = None

    async def run(self, stop: asyncio.Event | None = None) -> None:
        stop = stop or asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(self._handle_loop_exception)

        self._scheduler.schedule(self._check_interval, self._check_job.run, job_id=CHECK_JOB_ID)
        self._scheduler.start()
        self._logger.info(
            "bot.started", extra={"extra": {"check_interval": self._check_interval}}
        )
        try:
            while not stop.is_set():
                await self.poll_once()
        finally:
            self._scheduler.shutdown()
            await self.drain()
            self._logger.info("bot.stopped", extra={"extra": {}})

    async def poll_once(self) -> int:
        """Busca um lote de updates e agenda o processamento de cada um."""

        try:
            updates = await self._transport.get_updates(
                offset=self._offset, timeout=self._poll_timeout
            )
        except DeliveryError as exc:
            self._log_polling_error(exc)
            await self._sleep(self._error_backoff)
            return 0

        self._offset = next_offset(updates, self._offset)
        for update in updates:
            self._spawn(self.process_update(update))
        return len(updates)

    async def process_update(self, update: Mapping[str, Any]) -> None:
        try:
            event = parse_update(update)
            if event is not None:
                await self._router.dispatch(event)
        except Exception as exc:  # noqa: BLE001 - um update não derruba o loop
            self._logger.exception(
                "bot.update_failed",
                extra={"extra": {"update_id": update.get("update_id"), "error": repr(exc)}},
            )

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error(
                "bot.task_failed", extra={"extra": {"error": repr(task.exception())}}
            )

    def _log_polling_error(self, exc: DeliveryError) -> None:
        payload = {
            "kind": exc.kind.value,
            "status_code": exc.status_code,
            "error": str(exc),
        }
        if exc.status_code == CONFLICT_STATUS:
            self._logger.error("bot.polling_conflict", extra={"extra": payload})
        else:
            self._logger.warning("bot.polling_error", extra={"extra": payload})

    def _handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        exc = context.get("exception")
        self._logger.error(
            "bot.unhandled_exception",
            extra={
                "extra": {
                    "message": context.get("message"),
                    "error": repr(exc) if exc is not None else None,
                }
            },
        )


__all__ = ["BotApplication"]
