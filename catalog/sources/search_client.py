"""
Structured Source Adapter - paginated, facet-based search provider.

Translates orchestrator intents ("list categories", "list products for a
category page", "find product by handle") into Algolia-style query calls
and normalizes the inconsistent hit schema into ProductRecord values.

Every outbound request is preceded by a randomized pacing delay
(base delay plus jitter). The client never retries; transport failures
and non-2xx answers surface as SourceUnavailable.
"""

import logging
import random
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from catalog.config import ScrapeConfig
from catalog.exceptions import CatalogError, SourceUnavailable
from catalog.sources.types import ProductRecord, SearchResult
from catalog.utils.normalization import clean_text, parse_price, slugify

logger = logging.getLogger(__name__)

CATEGORY_FACET = "hierarchicalCategories.lvl0"

# Returned when the provider cannot list its categories
FALLBACK_CATEGORIES = [
    "Children's Books",
    "Fiction",
    "Non-Fiction",
    "Biography & Autobiography",
    "History",
    "Science & Nature",
    "Religion & Spirituality",
    "Art & Photography",
    "Business & Economics",
    "Self-Help",
]

DEFAULT_IMAGE_URL = "https://images.unsplash.com/photo-1543002588-bfa74002ed7e?w=400"
UNKNOWN_TITLE = "Unknown Title"
GENERAL_CATEGORY = "General"


class SearchApiClient:
    """
    Client for the structured search provider.

    Field extraction tries candidate source fields in priority order and
    falls back to a fixed default, because the provider's schema differs
    between index configurations.
    """

    TITLE_FIELDS = ("longTitle", "shortTitle", "title", "name")
    AUTHOR_FIELDS = ("author", "authors", "contributor")
    PRICE_FIELDS = ("fromPrice", "bestConditionPrice", "price")
    IMAGE_FIELDS = ("imageURL", "imageUrl", "image")
    HANDLE_FIELDS = ("productHandle", "handle")

    ATTRIBUTES_TO_RETRIEVE = [
        "objectID",
        "shortTitle",
        "longTitle",
        "title",
        "author",
        "fromPrice",
        "bestConditionPrice",
        "productHandle",
        "hierarchicalCategories",
        "categories",
        "imageURL",
        "productType",
        "inStock",
    ]

    FACETS = [CATEGORY_FACET, "hierarchicalCategories.lvl1", "productType", "author"]

    def __init__(
        self,
        config: ScrapeConfig,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the search client.

        Args:
            config: Scrape configuration (credentials, pacing, timeout)
            http_client: Optional preconfigured httpx client (tests inject
                one backed by httpx.MockTransport)
        """
        self.config = config
        self._http_client = http_client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self.config.search_timeout),
                headers=self._get_headers(),
            )
        return self._http_client

    def close(self):
        """Close HTTP client connection."""
        if self._http_client:
            self._http_client.close()
            self._http_client = None

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Algolia-API-Key": self.config.search_api_key,
            "X-Algolia-Application-Id": self.config.search_app_id,
            "Content-Type": "application/json",
        }

    def _pace(self):
        """Sleep for the base delay plus random jitter before a request."""
        delay_ms = self.config.delay_ms + random.uniform(0, self.config.jitter_ms)
        logger.debug(f"Waiting {round(delay_ms)}ms before next search request")
        time.sleep(delay_ms / 1000)

    def _post_query(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self._pace()

        url = f"{self.config.search_base_url}/query"
        try:
            response = self._get_http_client().post(url, json=body, headers=self._get_headers())
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Search request failed: {e}") from e

        if not response.is_success:
            raise SourceUnavailable(
                f"Search provider returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceUnavailable(f"Search provider returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise SourceUnavailable("Search provider returned an unexpected payload")
        return payload

    def search_products(
        self,
        query: str = "",
        page_index: int = 0,
        page_size: int = 20,
        filters: Optional[str] = None,
        facet_filters: Optional[List[List[str]]] = None,
    ) -> SearchResult:
        """
        Run one paginated search.

        Args:
            query: Free-text query
            page_index: Zero-based page index
            page_size: Hits per page
            filters: Provider filter expression
            facet_filters: Provider facet filters (OR inside, AND across lists)

        Returns:
            SearchResult with raw hits and the provider's total count

        Raises:
            SourceUnavailable: transport failure or non-2xx response
        """
        body: Dict[str, Any] = {
            "query": query,
            "page": page_index,
            "hitsPerPage": page_size,
            "attributesToRetrieve": self.ATTRIBUTES_TO_RETRIEVE,
            "facets": self.FACETS,
            "analytics": False,
        }
        if filters:
            body["filters"] = filters
        if facet_filters:
            body["facetFilters"] = facet_filters

        logger.info(f"Searching provider: query='{query}', page={page_index}, hitsPerPage={page_size}")
        payload = self._post_query(body)

        hits = payload.get("hits") or []
        if not isinstance(hits, list):
            hits = []

        result = SearchResult(
            items=hits,
            total_count=int(payload.get("nbHits") or 0),
            page_index=int(payload.get("page") or page_index),
            page_count=int(payload.get("nbPages") or 0),
            facets=payload.get("facets") or {},
        )
        logger.info(f"Search returned {len(result.items)} products (total: {result.total_count})")
        return result

    def products_by_category(
        self,
        category_name: str,
        page_index: int = 0,
        page_size: int = 20,
    ) -> SearchResult:
        """Search one page of products filtered on the top-level category facet."""
        return self.search_products(
            "",
            page_index,
            page_size,
            facet_filters=[[f"{CATEGORY_FACET}:{category_name}"]],
        )

    def list_categories(self) -> List[str]:
        """
        List provider category names from the category facet.

        Never raises: on provider error (or a missing facet) a fixed
        fallback list of generic categories is returned.
        """
        logger.info("Fetching product categories from search provider")
        try:
            result = self.search_products("", 0, 1)
        except SourceUnavailable as e:
            logger.error(f"Failed to list categories, using fallback: {e}")
            return list(FALLBACK_CATEGORIES)

        facet = result.facets.get(CATEGORY_FACET)
        if not facet:
            logger.warning("No category facet in search response, using fallback")
            return list(FALLBACK_CATEGORIES)

        categories = [name for name in facet.keys() if name]
        logger.info(f"Found {len(categories)} categories from search provider")
        return categories

    def find_by_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        """Return the first hit matching a product handle, or None."""
        try:
            result = self.search_products(handle, 0, 1)
        except CatalogError as e:
            logger.error(f"Failed to get product {handle}: {e}")
            return None
        return result.items[0] if result.items else None

    def related_products(
        self,
        category_name: str,
        exclude_handle: str,
        limit: int = 6,
    ) -> List[Dict[str, Any]]:
        """Products in the same category, excluding one handle. Empty on error."""
        try:
            result = self.products_by_category(category_name, 0, limit + 1)
        except CatalogError as e:
            logger.error(f"Failed to get related products: {e}")
            return []

        related = [hit for hit in result.items if self.extract_handle(hit) != exclude_handle]
        return related[:limit]

    # ------------------------------------------------------------------
    # Field extraction
    # ------------------------------------------------------------------

    @staticmethod
    def _first_value(hit: Dict[str, Any], fields: Sequence[str]):
        for name in fields:
            value = hit.get(name)
            if isinstance(value, str):
                value = clean_text(value)
            if isinstance(value, list):
                value = next((v for v in value if v), None)
            if value not in (None, "", 0):
                return value
        return None

    def extract_title(self, hit: Dict[str, Any]) -> str:
        return str(self._first_value(hit, self.TITLE_FIELDS) or UNKNOWN_TITLE)

    def extract_author(self, hit: Dict[str, Any]) -> Optional[str]:
        value = self._first_value(hit, self.AUTHOR_FIELDS)
        return str(value) if value else None

    def extract_price(self, hit: Dict[str, Any]):
        for name in self.PRICE_FIELDS:
            price = parse_price(hit.get(name))
            if price:
                return price
        return None

    def extract_image_url(self, hit: Dict[str, Any]) -> str:
        return str(self._first_value(hit, self.IMAGE_FIELDS) or DEFAULT_IMAGE_URL)

    def extract_handle(self, hit: Dict[str, Any]) -> Optional[str]:
        value = self._first_value(hit, self.HANDLE_FIELDS)
        return str(value) if value else None

    def extract_category(self, hit: Dict[str, Any]) -> str:
        hierarchy = hit.get("hierarchicalCategories") or {}
        if isinstance(hierarchy, dict):
            for level in ("lvl0", "lvl1"):
                value = hierarchy.get(level)
                if isinstance(value, list):
                    value = value[0] if value else None
                if value:
                    return str(value)
        categories = hit.get("categories") or []
        if isinstance(categories, list) and categories and categories[0]:
            return str(categories[0])
        return GENERAL_CATEGORY

    def to_product_record(self, hit: Dict[str, Any]) -> ProductRecord:
        """
        Normalize one search hit into a ProductRecord.

        Raises:
            ValueError: the hit has no usable natural key (objectID or handle)
        """
        if not isinstance(hit, dict):
            raise ValueError(f"Search hit is not an object: {hit!r}")

        source_id = hit.get("objectID")
        if not source_id:
            raise ValueError("Search hit has no objectID")

        handle = self.extract_handle(hit)
        if not handle:
            raise ValueError(f"Search hit {source_id} has no product handle")

        return ProductRecord(
            source_id=str(source_id),
            source_url=self.build_product_url(handle),
            title=self.extract_title(hit),
            author=self.extract_author(hit),
            price=self.extract_price(hit),
            currency=self.config.default_currency,
            image_url=self.extract_image_url(hit),
            category_name=self.extract_category(hit),
        )

    # ------------------------------------------------------------------
    # URL builders
    # ------------------------------------------------------------------

    def build_product_url(self, handle: str) -> str:
        return f"{self.config.site_url}/en-gb/products/{handle}"

    def build_category_url(self, category_name: str) -> str:
        return f"{self.config.site_url}/en-gb/collections/{slugify(category_name)}"

    def build_section_url(self, section_title: str) -> str:
        return f"{self.config.site_url}/en-gb/collections/{slugify(section_title)}"
