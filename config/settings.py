"""Carregamento de configurações para o bot Vigia."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from vigia_core.infrastructure.http.httpx_fetcher import DEFAULT_USER_AGENT


@dataclass(slots=True)
class TelegramSettings:
    token: str | None = None
    notification_chat_id: int | None = None
    notification_topic_id: int | None = None
    api_url: str = "https://api.telegram.org"
    poll_timeout: int = 25


@dataclass(slots=True)
class SourceSettings:
    freetp_url: str = "https://freetp.org"
    store_url: str = "https://store.epicgames.com"
    promotions_api_url: str = (
        "https://store-site-backend-static.ak.epicgames.com/freeGamesPromotions"
    )
    locale: str = "ru"
    country: str = "RU"
    store_language: str = "ru"
    listing_limit: int = 10


@dataclass(slots=True)
class SchedulerSettings:
    check_interval: str = "*/30 * * * * *"
    timezone: str = "Europe/Moscow"


@dataclass(slots=True)
class StorageSettings:
    data_dir: Path = field(default_factory=lambda: Path("data"))


@dataclass(slots=True)
class HttpSettings:
    page_timeout: float = 15.0
    detail_timeout: float = 20.0
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class Settings:
    telegram: TelegramSettings
    sources: SourceSettings
    scheduler: SchedulerSettings
    storage: StorageSettings
    http: HttpSettings


def _optional_int(env: Mapping[str, str], name: str) -> int | None:
    value = (env.get(name) or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:  # noqa: PERF203 - trata entrada malformada
        raise RuntimeError(f"Variável de ambiente {name} deve ser um inteiro") from exc


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    parsed = _optional_int(env, name)
    return default if parsed is None else parsed


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    value = (env.get(name) or "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Variável de ambiente {name} deve ser numérica") from exc


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Carrega configurações a partir de variáveis de ambiente.

    A ausência do token só é tratada ao iniciar o bot, para que execuções
    como ``--dry-run`` funcionem sem credenciais.
    """

    env = os.environ if environ is None else environ

    topic_id = _optional_int(env, "NOTIFICATION_TOPIC_ID")
    telegram = TelegramSettings(
        token=(env.get("TELEGRAM_BOT_TOKEN") or "").strip() or None,
        notification_chat_id=_optional_int(env, "NOTIFICATION_CHAT_ID"),
        notification_topic_id=topic_id if topic_id and topic_id > 0 else None,
        api_url=env.get("TELEGRAM_API_URL", "https://api.telegram.org"),
        poll_timeout=_int(env, "TELEGRAM_POLL_TIMEOUT", 25),
    )

    defaults = SourceSettings()
    sources = SourceSettings(
        freetp_url=env.get("FREETP_URL", defaults.freetp_url),
        store_url=env.get("EPIC_STORE_URL", defaults.store_url),
        promotions_api_url=env.get("EPIC_PROMOTIONS_URL", defaults.promotions_api_url),
        locale=env.get("EPIC_LOCALE", defaults.locale),
        country=env.get("EPIC_COUNTRY", defaults.country),
        store_language=env.get("EPIC_LANGUAGE", defaults.store_language),
        listing_limit=_int(env, "LISTING_LIMIT", defaults.listing_limit),
    )

    scheduler_defaults = SchedulerSettings()
    scheduler = SchedulerSettings(
        check_interval=env.get("CHECK_INTERVAL") or scheduler_defaults.check_interval,
        timezone=env.get("SCHEDULER_TIMEZONE") or scheduler_defaults.timezone,
    )

    storage = StorageSettings(data_dir=Path(env.get("VIGIA_DATA_DIR") or "data"))

    http = HttpSettings(
        page_timeout=_float(env, "HTTP_PAGE_TIMEOUT", 15.0),
        detail_timeout=_float(env, "HTTP_DETAIL_TIMEOUT", 20.0),
        user_agent=env.get("HTTP_USER_AGENT") or DEFAULT_USER_AGENT,
    )

    return Settings(
        telegram=telegram,
        sources=sources,
        scheduler=scheduler,
        storage=storage,
        http=http,
    )
