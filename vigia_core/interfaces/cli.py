"""Composition root CLI para executar o bot Vigia."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from logging import Logger
from typing import Any

import httpx

from config.settings import Settings, load_settings
from vigia_core.application.check_job import CheckNewGamesJob
from vigia_core.application.commands import CommandRouter
from vigia_core.application.monitors import FreewareMonitor, PromotionMonitor
from vigia_core.domain.errors import VigiaError
from vigia_core.infrastructure.delivery.delivery_engine import DeliveryEngine
from vigia_core.infrastructure.encoding.charset_decoder import EncodingNormalizer
from vigia_core.infrastructure.http.httpx_fetcher import HttpxPageFetcher
from vigia_core.infrastructure.logging.logger import configure_logger
from vigia_core.infrastructure.normalizers.date_normalizer import DateTextNormalizer
from vigia_core.infrastructure.normalizers.url_normalizer import SimpleUrlNormalizer
from vigia_core.infrastructure.presentation.pagination import (
    PaginationPresenter,
    PaginationSessionStore,
)
from vigia_core.infrastructure.promotions.promotion_extractor import PromotionExtractor
from vigia_core.infrastructure.scheduling.cron_scheduler import CronScheduler
from vigia_core.infrastructure.scraping.detail_enricher import DetailEnricher
from vigia_core.infrastructure.scraping.freeware_catalog import FreewareCatalogScraper
from vigia_core.infrastructure.scraping.listing_extractor import ListingExtractor
from vigia_core.infrastructure.storage.json_known_set import (
    FREEWARE_FILENAME,
    PROMOTIONS_FILENAME,
    FreewareKnownSet,
    PromotionKnownSet,
)
from vigia_core.infrastructure.telegram.bot_api import TelegramBotTransport
from vigia_core.infrastructure.time.system_clock import SystemClock
from vigia_core.interfaces.bot import BotApplication


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bot Vigia de jogos gratuitos")
    parser.add_argument(
        "--check-once",
        action="store_true",
        help="Executa uma verificação das fontes, imprime as novidades e encerra.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Inicializa componentes sem acessar as fontes nem o Telegram.",
    )
    return parser


@dataclass(slots=True)
class Monitors:
    freeware: FreewareMonitor
    promotions: PromotionMonitor


def build_monitors(
    *,
    settings: Settings,
    client: Any,
    clock: SystemClock,
    logger: Logger,
) -> Monitors:
    sources = settings.sources
    fetcher = HttpxPageFetcher(
        client,
        decoder=EncodingNormalizer(logger=logger.getChild("encoding")),
        timeout=settings.http.page_timeout,
        user_agent=settings.http.user_agent,
    )
    extractor = ListingExtractor(
        url_normalizer=SimpleUrlNormalizer(default_base_url=sources.freetp_url),
        date_normalizer=DateTextNormalizer(clock),
        logger=logger.getChild("listing"),
    )
    scraper = FreewareCatalogScraper(
        base_url=sources.freetp_url,
        fetcher=fetcher,
        extractor=extractor,
        logger=logger.getChild("catalog"),
        timeout=settings.http.page_timeout,
    )
    enricher = DetailEnricher(
        fetcher=fetcher,
        logger=logger.getChild("enrich"),
        timeout=settings.http.detail_timeout,
    )
    promotion_source = PromotionExtractor(
        fetcher=fetcher,
        clock=clock,
        logger=logger.getChild("promotions"),
        api_url=sources.promotions_api_url,
        store_url=sources.store_url,
        locale=sources.locale,
        country=sources.country,
        language=sources.store_language,
        timeout=settings.http.detail_timeout,
    )

    data_dir = settings.storage.data_dir
    storage_logger = logger.getChild("storage")
    freeware = FreewareMonitor(
        source=scraper,
        store=FreewareKnownSet(data_dir / FREEWARE_FILENAME, logger=storage_logger),
        enricher=enricher,
        logger=logger.getChild("monitor"),
        limit=sources.listing_limit,
    )
    promotions = PromotionMonitor(
        source=promotion_source,
        store=PromotionKnownSet(data_dir / PROMOTIONS_FILENAME, logger=storage_logger),
        clock=clock,
        logger=logger.getChild("monitor"),
    )
    return Monitors(freeware=freeware, promotions=promotions)


async def _check_once(
    settings: Settings, clock: SystemClock, logger: Logger
) -> list[Mapping[str, object]]:
    results: list[Mapping[str, object]] = []
    async with httpx.AsyncClient(follow_redirects=True) as client:
        monitors = build_monitors(settings=settings, client=client, clock=clock, logger=logger)
        for monitor in (monitors.freeware, monitors.promotions):
            report = await monitor.check()
            results.append(
                {
                    "source": report.source,
                    "total": report.total,
                    "new": [asdict(item) for item in report.new],
                }
            )
    return results


async def _run_bot(settings: Settings, clock: SystemClock, logger: Logger) -> None:
    telegram = settings.telegram
    async with httpx.AsyncClient(follow_redirects=True) as client:
        monitors = build_monitors(settings=settings, client=client, clock=clock, logger=logger)
        transport = TelegramBotTransport(client, token=telegram.token or "", api_url=telegram.api_url)
        delivery = DeliveryEngine(
            transport,
            logger=logger.getChild("delivery"),
            notification_chat_id=telegram.notification_chat_id,
            notification_topic_id=telegram.notification_topic_id,
        )
        presenter = PaginationPresenter(
            delivery, PaginationSessionStore(), logger=logger.getChild("pagination")
        )
        check_job = CheckNewGamesJob(
            freeware=monitors.freeware,
            promotions=monitors.promotions,
            delivery=delivery,
            clock=clock,
            logger=logger.getChild("check"),
            notification_chat_id=telegram.notification_chat_id,
        )
        router = CommandRouter(
            delivery=delivery,
            presenter=presenter,
            freeware=monitors.freeware,
            promotions=monitors.promotions,
            check_job=check_job,
            logger=logger.getChild("commands"),
        )
        application = BotApplication(
            transport=transport,
            router=router,
            scheduler=CronScheduler(
                logger=logger.getChild("scheduler"), timezone=settings.scheduler.timezone
            ),
            check_job=check_job,
            check_interval=settings.scheduler.check_interval,
            logger=logger.getChild("bot"),
            poll_timeout=telegram.poll_timeout,
        )
        await application.run()


def main(argv: Sequence[str] | None = None) -> int:
    arg_parser = _build_parser()
    args = arg_parser.parse_args(argv)

    logger = configure_logger()
    try:
        settings = load_settings()
    except RuntimeError as exc:
        logger.exception("cli.config_error", extra={"extra": {"error": str(exc)}})
        return 1
    clock = SystemClock(settings.scheduler.timezone)

    logger.info("cli.start", extra={"extra": {"at": clock.now().isoformat()}})

    if args.dry_run:
        logger.info("cli.dry_run", extra={"extra": {"at": clock.now().isoformat()}})
        print(json.dumps([], ensure_ascii=False, indent=2))
        logger.info(
            "cli.finish",
            extra={
                "extra": {
                    "at": clock.now().isoformat(),
                    "count": 0,
                    "dry_run": True,
                }
            },
        )
        return 0

    if args.check_once:
        try:
            results = asyncio.run(_check_once(settings, clock, logger))
        except VigiaError as exc:
            logger.exception(
                "cli.check_error", extra={"extra": {"error": exc.__class__.__name__}}
            )
            return 1
        print(json.dumps(results, ensure_ascii=False, indent=2))
        logger.info(
            "cli.finish",
            extra={
                "extra": {
                    "at": clock.now().isoformat(),
                    "count": sum(len(item["new"]) for item in results),
                    "dry_run": False,
                }
            },
        )
        return 0

    if not settings.telegram.token:
        logger.error(
            "cli.token_missing", extra={"extra": {"env": "TELEGRAM_BOT_TOKEN"}}
        )
        return 1

    try:
        asyncio.run(_run_bot(settings, clock, logger))
    except KeyboardInterrupt:
        logger.info("cli.interrupted", extra={"extra": {}})
    logger.info(
        "cli.finish",
        extra={"extra": {"at": clock.now().isoformat(), "dry_run": False}},
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - entrypoint manual
    raise SystemExit(main())
