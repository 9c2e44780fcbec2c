"""Componentes de scraping do catálogo de jogos gratuitos."""

from .detail_enricher import DetailEnricher, parse_genres
from .freeware_catalog import FreewareCatalogScraper
from .listing_extractor import ListingExtractor

__all__ = [
    "DetailEnricher",
    "FreewareCatalogScraper",
    "ListingExtractor",
    "parse_genres",
]
