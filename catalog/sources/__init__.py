"""
Source adapters for the catalog.

- SearchApiClient: structured, paginated search provider (fast listings)
- ProductPageExtractor: headless-browser product pages (rich detail)

Both adapters are read-only: they return dataclasses and never touch the
database.
"""

from .types import PageExtraction, ProductRecord, ReviewRecord, SearchResult
from .search_client import SearchApiClient, FALLBACK_CATEGORIES
from .page_extractor import ProductPageExtractor, parse_product_page

__all__ = [
    "PageExtraction",
    "ProductRecord",
    "ReviewRecord",
    "SearchResult",
    "SearchApiClient",
    "FALLBACK_CATEGORIES",
    "ProductPageExtractor",
    "parse_product_page",
]
