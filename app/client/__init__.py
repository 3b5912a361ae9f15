"""Client-side helpers that consume the catalog proxy."""

from app.client.aggregator import CatalogAggregator
from app.client.catalog import CatalogClient

__all__ = ["CatalogAggregator", "CatalogClient"]
