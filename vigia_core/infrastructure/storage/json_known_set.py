"""Known-sets persistidos como um array JSON por tipo de entidade.

O arquivo é lido inteiro na inicialização e reescrito por completo a cada
mutação. Falhas de escrita são registradas sem interromper o fluxo; o
estado em memória permanece atualizado.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from logging import Logger
from pathlib import Path
from typing import Any, Generic, TypeVar

from vigia_core.domain.contracts import (
    AUTHOR_UNKNOWN,
    GENRES_UNSPECIFIED,
    Listing,
    PromotionListing,
)
from vigia_core.domain.errors import PersistenceError
from vigia_core.infrastructure.normalizers.date_normalizer import recency_key
from vigia_core.infrastructure.promotions.offers import has_expired

T = TypeVar("T")

FREEWARE_FILENAME = "games.json"
PROMOTIONS_FILENAME = "epic-games.json"


class JsonKnownSet(Generic[T]):
    """Mapa identidade -> entidade com persistência em arquivo JSON."""

    def __init__(
        self,
        path: str | Path,
        *,
        logger: Logger,
        to_record: Callable[[T], Mapping[str, Any]],
        from_record: Callable[[Mapping[str, Any]], T],
        identity: Callable[[T], str] = lambda item: getattr(item, "id"),
    ) -> None:
        self._path = Path(path)
        self._logger = logger
        self._to_record = to_record
        self._from_record = from_record
        self._identity = identity
        self._items: dict[str, T] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> None:
        try:
            self._items = self._read()
        except PersistenceError as exc:
            self._logger.error(
                "storage.load_failed",
                extra={"extra": {"path": str(self._path), "error": repr(exc.cause or exc)}},
            )
            self._items = {}
            return
        self._logger.info(
            "storage.loaded",
            extra={"extra": {"path": str(self._path), "count": len(self._items)}},
        )

    def contains(self, item_id: str) -> bool:
        return item_id in self._items

    def get(self, item_id: str) -> T | None:
        return self._items.get(item_id)

    def all(self) -> list[T]:
        return list(self._items.values())

    def diff_new(self, candidates: Iterable[T]) -> list[T]:
        return [item for item in candidates if not self.contains(self._identity(item))]

    def upsert_all(self, items: Iterable[T]) -> None:
        for item in items:
            self._items[self._identity(item)] = item
        self.save()

    def remove(self, item_ids: Iterable[str]) -> int:
        removed = 0
        for item_id in item_ids:
            if self._items.pop(item_id, None) is not None:
                removed += 1
        if removed:
            self.save()
        return removed

    def save(self) -> bool:
        try:
            self._write()
        except PersistenceError as exc:
            self._logger.error(
                "storage.save_failed",
                extra={"extra": {"path": str(self._path), "error": repr(exc.cause or exc)}},
            )
            return False
        return True

    def _read(self) -> dict[str, T]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not self._path.exists():
                return {}
            raw = self._path.read_text(encoding="utf-8")
            records = json.loads(raw) if raw.strip() else []
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Falha ao ler {self._path}", cause=exc) from exc

        if not isinstance(records, list):
            raise PersistenceError(f"Conteúdo inesperado em {self._path}: esperado array")

        items: dict[str, T] = {}
        for record in records:
            if not isinstance(record, Mapping):
                continue
            try:
                item = self._from_record(record)
            except (KeyError, TypeError, ValueError) as exc:
                self._logger.warning(
                    "storage.record_skipped",
                    extra={"extra": {"path": str(self._path), "error": repr(exc)}},
                )
                continue
            items[self._identity(item)] = item
        return items

    def _write(self) -> None:
        payload = [dict(self._to_record(item)) for item in self._items.values()]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Falha ao gravar {self._path}", cause=exc) from exc


def listing_to_record(listing: Listing) -> dict[str, Any]:
    return {
        "id": listing.id,
        "title": listing.title,
        "url": listing.url,
        "updateDate": listing.update_date,
        "description": listing.description,
        "genres": list(listing.genres),
        "author": listing.author,
        "publishDate": listing.publish_date,
    }


def record_to_listing(record: Mapping[str, Any]) -> Listing:
    """Reconstrói um ``Listing`` migrando o campo legado ``category``."""

    raw_genres = record.get("genres")
    if isinstance(raw_genres, str):
        raw_genres = [raw_genres]
    elif not isinstance(raw_genres, list):
        raw_genres = []
    genres = [str(genre) for genre in raw_genres if genre]
    category = record.get("category")
    if not genres and category:
        genres = [str(category)]
    if not genres:
        genres = [GENRES_UNSPECIFIED]

    update_date = str(record.get("updateDate") or "")
    return Listing(
        id=str(record["id"]),
        title=str(record.get("title") or ""),
        url=str(record.get("url") or ""),
        update_date=update_date,
        description=str(record.get("description") or ""),
        genres=genres,
        author=str(record.get("author") or AUTHOR_UNKNOWN),
        publish_date=str(record.get("publishDate") or update_date),
    )


def promotion_to_record(promotion: PromotionListing) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": promotion.id,
        "title": promotion.title,
        "namespace": promotion.namespace,
        "description": promotion.description,
        "url": promotion.url,
        "startDate": promotion.start_date,
        "endDate": promotion.end_date,
    }
    optional = {
        "imageUrl": promotion.image_url,
        "originalPrice": promotion.original_price,
        "publisher": promotion.publisher,
        "developer": promotion.developer,
    }
    record.update({key: value for key, value in optional.items() if value is not None})
    return record


def record_to_promotion(record: Mapping[str, Any]) -> PromotionListing:
    return PromotionListing(
        id=str(record["id"]),
        title=str(record.get("title") or ""),
        namespace=str(record.get("namespace") or record["id"]),
        description=str(record.get("description") or ""),
        url=str(record.get("url") or ""),
        start_date=str(record.get("startDate") or ""),
        end_date=str(record["endDate"]),
        image_url=record.get("imageUrl"),
        original_price=record.get("originalPrice"),
        publisher=record.get("publisher"),
        developer=record.get("developer"),
    )


class FreewareKnownSet(JsonKnownSet[Listing]):
    """Known-set das entradas do catálogo de jogos gratuitos."""

    def __init__(self, path: str | Path, *, logger: Logger) -> None:
        super().__init__(
            path,
            logger=logger,
            to_record=listing_to_record,
            from_record=record_to_listing,
        )

    def latest_by_update_recency(self, limit: int = 10) -> list[Listing]:
        ordered = sorted(
            self.all(), key=lambda item: recency_key(item.update_date), reverse=True
        )
        return ordered[:limit]


class PromotionKnownSet(JsonKnownSet[PromotionListing]):
    """Known-set das ofertas gratuitas da loja."""

    def __init__(self, path: str | Path, *, logger: Logger) -> None:
        super().__init__(
            path,
            logger=logger,
            to_record=promotion_to_record,
            from_record=record_to_promotion,
        )

    def active(self, now: datetime) -> list[PromotionListing]:
        return [item for item in self.all() if not has_expired(item, now)]

    def remove_expired(self, now: datetime) -> int:
        expired = [item.id for item in self.all() if has_expired(item, now)]
        removed = self.remove(expired)
        if removed:
            self._logger.info(
                "storage.expired_removed",
                extra={"extra": {"path": str(self.path), "count": removed}},
            )
        return removed


__all__ = [
    "FREEWARE_FILENAME",
    "FreewareKnownSet",
    "JsonKnownSet",
    "PROMOTIONS_FILENAME",
    "PromotionKnownSet",
    "listing_to_record",
    "promotion_to_record",
    "record_to_listing",
    "record_to_promotion",
]
