"""
Selector chains for product page extraction.

Each field has an ordered list of extraction rules. Rules are plain
frozen values evaluated against a parsed HTML document; the first rule
that yields a non-empty result wins, and the caller falls back to a
documented default when none does. Keeping the chains as data makes the
fallback policy testable from HTML fixtures without a browser.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from catalog.utils.normalization import clean_text

logger = logging.getLogger(__name__)


def parse_document(html: str) -> BeautifulSoup:
    """Parse page HTML with the stdlib-backed parser."""
    return BeautifulSoup(html or "", "html.parser")


def _element_value(element: Tag, attribute: Optional[str]) -> str:
    if attribute:
        return clean_text(element.get(attribute) or "")
    return clean_text(element.get_text(" "))


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == {} or value == []


@dataclass(frozen=True)
class SelectorRule:
    """Text (or an attribute) of the first element matching a CSS selector."""

    selector: str
    attribute: Optional[str] = None

    def extract(self, document: BeautifulSoup) -> Optional[str]:
        for element in document.select(self.selector):
            value = _element_value(element, self.attribute)
            if value:
                return value
        return None


@dataclass(frozen=True)
class JsonLdRule:
    """A value read from the page's schema.org Product JSON-LD block."""

    path: Tuple[str, ...]

    def extract(self, document: BeautifulSoup) -> Optional[str]:
        for product in _json_ld_products(document):
            value: Any = product
            for key in self.path:
                if not isinstance(value, dict):
                    value = None
                    break
                value = value.get(key)
            if value not in (None, ""):
                return clean_text(str(value))
        return None


@dataclass(frozen=True)
class SpecRowRule:
    """Key/value pairs from repeated rows (table rows, list items)."""

    row_selector: str
    key_selector: str
    value_selector: str

    def extract(self, document: BeautifulSoup) -> Dict[str, str]:
        specs: Dict[str, str] = {}
        for row in document.select(self.row_selector):
            key_el = row.select_one(self.key_selector)
            value_el = row.select_one(self.value_selector)
            if key_el is None or value_el is None or key_el is value_el:
                continue
            key = clean_text(key_el.get_text(" ")).rstrip(":").strip()
            value = clean_text(value_el.get_text(" "))
            if key and value:
                specs[key] = value
        return specs


@dataclass(frozen=True)
class DefinitionListRule:
    """Key/value pairs from <dt>/<dd> siblings inside a definition list."""

    list_selector: str

    def extract(self, document: BeautifulSoup) -> Dict[str, str]:
        specs: Dict[str, str] = {}
        for dl in document.select(self.list_selector):
            for dt in dl.find_all("dt"):
                dd = dt.find_next_sibling("dd")
                if dd is None:
                    continue
                key = clean_text(dt.get_text(" ")).rstrip(":").strip()
                value = clean_text(dd.get_text(" "))
                if key and value:
                    specs[key] = value
        return specs


@dataclass(frozen=True)
class ReviewBlockRule:
    """Review dicts from repeated review containers."""

    block_selector: str
    author_selector: str
    rating_selector: str
    text_selector: str
    rating_attribute: Optional[str] = None

    def extract(self, document: BeautifulSoup) -> List[Dict[str, str]]:
        reviews = []
        for block in document.select(self.block_selector):
            author_el = block.select_one(self.author_selector)
            rating_el = block.select_one(self.rating_selector)
            text_el = block.select_one(self.text_selector)
            if rating_el is None:
                continue
            rating = _element_value(rating_el, self.rating_attribute)
            if not rating and self.rating_attribute:
                rating = _element_value(rating_el, None)
            reviews.append({
                "author": _element_value(author_el, None) if author_el is not None else "",
                "rating": rating,
                "text": _element_value(text_el, None) if text_el is not None else "",
            })
        return reviews


@dataclass(frozen=True)
class LinkListRule:
    """Distinct href values of links matching a selector."""

    selector: str

    def extract(self, document: BeautifulSoup) -> List[str]:
        links: List[str] = []
        for element in document.select(self.selector):
            href = (element.get("href") or "").strip()
            if href and href not in links:
                links.append(href)
        return links


def _json_ld_products(document: BeautifulSoup) -> List[Dict[str, Any]]:
    products = []
    for script in document.select('script[type="application/ld+json"]'):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        pending = list(data) if isinstance(data, list) else [data]
        while pending:
            candidate = pending.pop(0)
            if not isinstance(candidate, dict):
                continue
            if isinstance(candidate.get("@graph"), list):
                pending.extend(candidate["@graph"])
            elif candidate.get("@type") in ("Product", "Book"):
                products.append(candidate)
    return products


def first_match(rules: Sequence[Any], document: BeautifulSoup):
    """
    Evaluate rules in order and return the first non-empty result.

    A rule that raises is logged and skipped.
    """
    for rule in rules:
        try:
            value = rule.extract(document)
        except Exception as e:
            logger.debug(f"Extraction rule {rule!r} failed: {e}")
            continue
        if not _is_empty(value):
            return value
    return None


DESCRIPTION_RULES = (
    SelectorRule('[itemprop="description"]'),
    SelectorRule(".product-description"),
    SelectorRule("#description"),
    SelectorRule(".description"),
    JsonLdRule(("description",)),
    SelectorRule('meta[name="description"]', attribute="content"),
)

RATING_RULES = (
    SelectorRule('[itemprop="ratingValue"]', attribute="content"),
    SelectorRule('[itemprop="ratingValue"]'),
    SelectorRule(".rating-value"),
    SelectorRule(".stars .value"),
    JsonLdRule(("aggregateRating", "ratingValue")),
)

REVIEW_COUNT_RULES = (
    SelectorRule('[itemprop="reviewCount"]', attribute="content"),
    SelectorRule('[itemprop="reviewCount"]'),
    SelectorRule(".review-count"),
    SelectorRule(".stars .count"),
    JsonLdRule(("aggregateRating", "reviewCount")),
)

SPEC_RULES = (
    SpecRowRule("table.specs tr", "th", "td"),
    SpecRowRule(".product-attributes li", "strong", "span"),
    DefinitionListRule(".product-details dl"),
    DefinitionListRule("dl.product-details"),
)

REVIEW_RULES = (
    ReviewBlockRule(
        '[itemprop="review"]',
        '[itemprop="author"]',
        '[itemprop="ratingValue"]',
        '[itemprop="reviewBody"]',
        rating_attribute="content",
    ),
    ReviewBlockRule(".review", ".review-author", ".review-rating", ".review-text"),
    ReviewBlockRule(".product-review", ".author", ".rating", ".body"),
)

RECOMMENDATION_RULES = (
    LinkListRule('.recommendations a[href*="/products/"]'),
    LinkListRule('.related-products a[href*="/products/"]'),
    LinkListRule("[data-recommendations] a[href]"),
)
