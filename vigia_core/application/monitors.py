"""Casos de uso de verificação das fontes de jogos gratuitos."""

from __future__ import annotations

from collections.abc import Sequence
from logging import Logger

from vigia_core.application.change_detector import ChangeDetector
from vigia_core.domain.contracts import (
    CheckReport,
    Clock,
    Listing,
    ListingSource,
    PromotionListing,
    PromotionSource,
)
from vigia_core.infrastructure.scraping.detail_enricher import DetailEnricher
from vigia_core.infrastructure.storage.json_known_set import (
    FreewareKnownSet,
    PromotionKnownSet,
)

FREEWARE_SOURCE = "freeware"
PROMOTIONS_SOURCE = "promotions"


class FreewareMonitor:
    """Orquestra catálogo, known-set e enriquecimento das entradas."""

    def __init__(
        self,
        *,
        source: ListingSource,
        store: FreewareKnownSet,
        logger: Logger,
        enricher: DetailEnricher | None = None,
        detector: ChangeDetector | None = None,
        limit: int = 10,
    ) -> None:
        self._source = source
        self._store = store
        self._logger = logger
        self._enricher = enricher
        self._detector = detector or ChangeDetector()
        self._limit = limit

    async def check(self) -> CheckReport:
        """Busca a primeira página e persiste apenas as entradas novas."""

        listings = await self._source.fetch_listings(limit=self._limit)
        new = self._detector.diff_new(listings, self._store)
        if new:
            self._store.upsert_all(new)
        self._logger.info(
            "monitor.freeware_checked",
            extra={"extra": {"total": len(listings), "new": len(new)}},
        )
        return CheckReport(source=FREEWARE_SOURCE, total=len(listings), new=tuple(new))

    async def browse(self, page_number: int | None = None) -> list[Listing]:
        """Busca uma página do catálogo para exibição e atualiza o known-set.

        Entradas já enriquecidas reaproveitam os gêneros persistidos.
        """

        listings = await self._source.fetch_listings(
            limit=self._limit, page_number=page_number
        )
        for listing in listings:
            known = self._store.get(listing.id)
            if known is not None and not known.genres_pending:
                listing.genres = list(known.genres)
        if listings:
            self._store.upsert_all(listings)
        return listings

    def enrich_in_background(self, listings: Sequence[Listing]) -> bool:
        """Dispara o enriquecimento das entradas pendentes sem aguardar."""

        pending = [listing for listing in listings if listing.genres_pending]
        if self._enricher is None or not pending:
            return False
        self._enricher.start(pending, self._store.upsert_all)
        return True

    def latest(self, limit: int = 10) -> list[Listing]:
        return self._store.latest_by_update_recency(limit)


class PromotionMonitor:
    """Orquestra a extração de ofertas gratuitas e o known-set da loja."""

    def __init__(
        self,
        *,
        source: PromotionSource,
        store: PromotionKnownSet,
        clock: Clock,
        logger: Logger,
        detector: ChangeDetector | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._clock = clock
        self._logger = logger
        self._detector = detector or ChangeDetector()

    async def check(self) -> CheckReport:
        self._store.remove_expired(self._clock.now())
        promotions = await self._source.extract_currently_free()
        new = self._detector.diff_new(promotions, self._store)
        if new:
            self._store.upsert_all(new)
        self._logger.info(
            "monitor.promotions_checked",
            extra={"extra": {"total": len(promotions), "new": len(new)}},
        )
        return CheckReport(source=PROMOTIONS_SOURCE, total=len(promotions), new=tuple(new))

    async def current(self) -> list[PromotionListing]:
        """Ofertas vigentes; sem resultado da loja, usa as ativas persistidas.

        Não altera o known-set: só a verificação agendada registra ofertas,
        para que toda oferta nova seja anunciada.
        """

        promotions = await self._source.extract_currently_free()
        if promotions:
            return promotions
        return self._store.active(self._clock.now())


__all__ = ["FreewareMonitor", "PromotionMonitor"]
