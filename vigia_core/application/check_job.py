"""Verificação agendada de novidades com avisos no chat de notificações."""

from __future__ import annotations

from logging import Logger

from vigia_core.application.monitors import FreewareMonitor, PromotionMonitor
from vigia_core.domain.contracts import CheckReport, Clock, SendOptions
from vigia_core.infrastructure.delivery.delivery_engine import DeliveryEngine
from vigia_core.infrastructure.presentation.formatting import (
    format_check_failed,
    format_check_result,
    format_check_started,
    format_listing_plain,
    format_new_listing,
    format_new_promotion,
    format_promotion_plain,
)


class CheckNewGamesJob:
    """Executa a rodada de verificação disparada pelo agendador ou por comando.

    Sem chat de notificações configurado, o resultado fica apenas no log e
    no known-set.
    """

    def __init__(
        self,
        *,
        freeware: FreewareMonitor,
        delivery: DeliveryEngine,
        clock: Clock,
        logger: Logger,
        promotions: PromotionMonitor | None = None,
        notification_chat_id: int | None = None,
    ) -> None:
        self._freeware = freeware
        self._promotions = promotions
        self._delivery = delivery
        self._clock = clock
        self._logger = logger
        self._chat_id = notification_chat_id

    async def run(self) -> CheckReport | None:
        checked_at = self._clock.local_now()
        self._logger.info("check.start", extra={"extra": {"at": checked_at.isoformat()}})
        await self._notify(format_check_started(checked_at))

        try:
            report = await self._freeware.check()
        except Exception as exc:  # noqa: BLE001 - a falha vira aviso no chat
            self._logger.exception("check.failed", extra={"extra": {"error": repr(exc)}})
            await self._notify(format_check_failed(checked_at, str(exc) or exc.__class__.__name__))
            return None

        await self._notify(format_check_result(checked_at, len(report.new)))
        if self._chat_id is None:
            if report.new:
                self._logger.info(
                    "check.no_notification_chat", extra={"extra": {"new": len(report.new)}}
                )
        else:
            for listing in report.new:
                delivered = await self._delivery.send_with_fallback(
                    self._chat_id,
                    format_new_listing(listing),
                    format_listing_plain(listing),
                    SendOptions(),
                )
                if not delivered:
                    self._logger.warning(
                        "check.notify_failed", extra={"extra": {"id": listing.id}}
                    )
        self._freeware.enrich_in_background(report.new)

        await self._check_promotions()
        self._logger.info(
            "check.finish",
            extra={"extra": {"total": report.total, "new": len(report.new)}},
        )
        return report

    async def _check_promotions(self) -> None:
        if self._promotions is None:
            return
        try:
            report = await self._promotions.check()
        except Exception as exc:  # noqa: BLE001
            self._logger.exception(
                "check.promotions_failed", extra={"extra": {"error": repr(exc)}}
            )
            return
        if self._chat_id is None:
            return
        for promotion in report.new:
            await self._delivery.send_with_fallback(
                self._chat_id,
                format_new_promotion(promotion),
                format_promotion_plain(promotion),
                SendOptions(),
            )

    async def _notify(self, text: str) -> bool:
        if self._chat_id is None:
            return False
        return await self._delivery.send(self._chat_id, text, SendOptions())


__all__ = ["CheckNewGamesJob"]
