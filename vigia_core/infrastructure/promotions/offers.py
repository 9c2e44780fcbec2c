"""Regras puras sobre elementos do catálogo promocional da loja."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, time, timedelta, timezone
from typing import Any

from vigia_core.domain.contracts import PromotionListing

FALLBACK_TITLE = "Sem título"
DEFAULT_CURRENCY = "RUB"
IMAGE_PRIORITY: Sequence[str] = ("OfferImageWide", "OfferImageTall", "Thumbnail")
ROTATION_WEEKDAY = 3  # quinta-feira
ROTATION_TIME = time(17, 0, tzinfo=timezone.utc)


def dig(data: Any, *path: str | int) -> Any:
    """Navega em dicts/listas aninhados retornando ``None`` no primeiro buraco."""

    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def parse_instant(value: object) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: datetime) -> str:
    """Formata um instante como ``2024-01-04T17:00:00.000Z``."""

    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


def next_rotation_end(now: datetime) -> datetime:
    """Próxima quinta-feira às 17:00 UTC, horário usual de troca das ofertas."""

    current = now.astimezone(timezone.utc)
    days_ahead = (ROTATION_WEEKDAY - current.weekday()) % 7
    candidate = datetime.combine(
        current.date() + timedelta(days=days_ahead), ROTATION_TIME
    )
    if candidate <= current:
        candidate += timedelta(days=7)
    return candidate


def _offer_groups(element: Mapping[str, Any], key: str) -> Iterable[Mapping[str, Any]]:
    groups = dig(element, "promotions", key) or []
    for group in groups if isinstance(groups, list) else []:
        offers = group.get("promotionalOffers") if isinstance(group, Mapping) else None
        for offer in offers or []:
            if isinstance(offer, Mapping):
                yield offer


def is_free_offer_active(offer: Mapping[str, Any], now: datetime) -> bool:
    start = parse_instant(offer.get("startDate"))
    end = parse_instant(offer.get("endDate"))
    if start is None or end is None or not start <= now <= end:
        return False
    setting = offer.get("discountSetting")
    if not isinstance(setting, Mapping):
        return False
    percentage = setting.get("discountPercentage")
    return (
        setting.get("discountType") == "PERCENTAGE"
        and isinstance(percentage, (int, float))
        and not isinstance(percentage, bool)
        and percentage == 0
    )


def find_active_free_offer(
    element: Mapping[str, Any], now: datetime
) -> Mapping[str, Any] | None:
    """Oferta 100% gratuita vigente, buscando nas ofertas atuais e futuras.

    ``discountPercentage`` indica o percentual do preço que ainda é cobrado;
    ``0`` significa gratuito.
    """

    offers = [
        *_offer_groups(element, "promotionalOffers"),
        *_offer_groups(element, "upcomingPromotionalOffers"),
    ]
    for offer in offers:
        if is_free_offer_active(offer, now):
            return offer
    return None


def _custom_attribute(element: Mapping[str, Any], key: str) -> str | None:
    for attr in element.get("customAttributes") or []:
        if isinstance(attr, Mapping) and attr.get("key") == key and attr.get("value"):
            return str(attr["value"])
    return None


def resolve_slug(element: Mapping[str, Any], fallback: str) -> str:
    candidates = (
        element.get("productSlug"),
        element.get("urlSlug"),
        dig(element, "catalogNs", "mappings", 0, "pageSlug"),
        _custom_attribute(element, "productSlug"),
        _custom_attribute(element, "urlSlug"),
    )
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return fallback


def pick_image(element: Mapping[str, Any]) -> str | None:
    images = [img for img in element.get("keyImages") or [] if isinstance(img, Mapping)]
    for image_type in IMAGE_PRIORITY:
        for image in images:
            if image.get("type") == image_type and image.get("url"):
                return str(image["url"])
    if images and images[0].get("url"):
        return str(images[0]["url"])
    return None


def format_price(element: Mapping[str, Any]) -> str | None:
    amount = dig(element, "price", "totalPrice", "originalPrice") or 0
    if not isinstance(amount, (int, float)) or amount <= 0:
        return None
    currency = dig(element, "price", "totalPrice", "currencyCode") or DEFAULT_CURRENCY
    return f"{amount} {currency}"


def element_to_promotion(
    element: Mapping[str, Any],
    offer: Mapping[str, Any],
    *,
    store_url: str,
    language: str,
) -> PromotionListing | None:
    item_id = element.get("id") or element.get("namespace") or element.get("offerId")
    if not item_id:
        return None
    item_id = str(item_id)
    slug = resolve_slug(element, item_id)

    return PromotionListing(
        id=item_id,
        title=str(element.get("title") or FALLBACK_TITLE),
        namespace=str(element.get("namespace") or item_id),
        description=str(element.get("description") or element.get("shortDescription") or ""),
        url=f"{store_url.rstrip('/')}/{language}/p/{slug}",
        start_date=str(offer.get("startDate")),
        end_date=str(offer.get("endDate")),
        image_url=pick_image(element),
        original_price=format_price(element),
        publisher=dig(element, "publisher", "name")
        or _custom_attribute(element, "publisherName"),
        developer=dig(element, "seller", "name")
        or _custom_attribute(element, "developerName"),
    )


def promotions_from_elements(
    elements: Iterable[object],
    now: datetime,
    *,
    store_url: str,
    language: str,
) -> list[PromotionListing]:
    """Aplica a regra de oferta gratuita vigente a cada elemento."""

    promotions: list[PromotionListing] = []
    for element in elements:
        if not isinstance(element, Mapping):
            continue
        offer = find_active_free_offer(element, now)
        if offer is None:
            continue
        promotion = element_to_promotion(
            element, offer, store_url=store_url, language=language
        )
        if promotion is not None:
            promotions.append(promotion)
    return promotions


def is_currently_free(promotion: PromotionListing, now: datetime) -> bool:
    start = parse_instant(promotion.start_date)
    end = parse_instant(promotion.end_date)
    if start is None or end is None:
        return False
    return start <= now <= end


def has_expired(promotion: PromotionListing, now: datetime) -> bool:
    end = parse_instant(promotion.end_date)
    return end is None or end < now


__all__ = [
    "dig",
    "element_to_promotion",
    "find_active_free_offer",
    "has_expired",
    "is_currently_free",
    "next_rotation_end",
    "parse_instant",
    "promotions_from_elements",
    "to_iso",
]
