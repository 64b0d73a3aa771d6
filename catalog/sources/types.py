"""
Data types returned by the source adapters.

Both adapters hand plain dataclasses to the orchestrator; only the
orchestrator touches the database.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass
class ProductRecord:
    """Canonical product listing normalized from a search hit."""

    source_id: str
    source_url: str
    title: str
    author: Optional[str] = None
    price: Optional[Decimal] = None
    currency: str = "GBP"
    image_url: str = ""
    category_name: str = ""


@dataclass
class SearchResult:
    """One page of raw search hits plus the provider's total hit count."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    total_count: int = 0
    page_index: int = 0
    page_count: int = 0
    facets: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class ReviewRecord:
    """A single review scraped from a product page."""

    author: Optional[str]
    rating: int
    text: str = ""


@dataclass
class PageExtraction:
    """
    Fields extracted from a rendered product page.

    Every field has a safe default so a partially rendered page still
    produces a usable (if sparse) result.
    """

    url: str = ""
    description: str = ""
    rating_average: Optional[float] = None
    review_count: int = 0
    specs: Dict[str, str] = field(default_factory=dict)
    reviews: List[ReviewRecord] = field(default_factory=list)
    recommendation_urls: List[str] = field(default_factory=list)

    # Names of fields that fell back to their default value
    missing_fields: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.description
            or self.rating_average is not None
            or self.review_count
            or self.specs
            or self.reviews
        )
