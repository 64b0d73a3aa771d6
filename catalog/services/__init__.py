"""
Catalog services: upserts, job tracking and the refresh orchestrator.
"""

from .orchestrator import CatalogOrchestrator, get_cached_products, get_catalog_orchestrator
from .types import RefreshResult

__all__ = [
    "CatalogOrchestrator",
    "RefreshResult",
    "get_cached_products",
    "get_catalog_orchestrator",
]
