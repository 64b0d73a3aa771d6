"""
Rendered-Page Source Adapter - Playwright headless browser.

Loads a single product page, waits for the network to go idle (bounded by
a settle timeout, after which extraction proceeds on whatever DOM is
present) and extracts description, rating, review count, specs, reviews
and recommendation links through the selector chains in selectors.py.

Only a failure to load the page at all raises PageFetchFailed; missing
fields fall back to defaults.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import List
from urllib.parse import urljoin

from catalog.config import ScrapeConfig
from catalog.exceptions import PageFetchFailed
from catalog.sources import selectors
from catalog.sources.types import PageExtraction, ReviewRecord
from catalog.utils.normalization import parse_int, parse_rating

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = ""


@dataclass
class RenderedPage:
    """HTML snapshot of a loaded page."""

    url: str
    status_code: int
    html: str
    settled: bool = True


def parse_product_page(html: str, url: str = "") -> PageExtraction:
    """
    Extract product fields from rendered page HTML.

    Pure function: never raises for missing fields, records which fields
    fell back to defaults in `missing_fields`.
    """
    document = selectors.parse_document(html)
    extraction = PageExtraction(url=url)

    description = selectors.first_match(selectors.DESCRIPTION_RULES, document)
    if description:
        extraction.description = description
    else:
        extraction.description = DEFAULT_DESCRIPTION
        extraction.missing_fields.append("description")

    rating = parse_rating(selectors.first_match(selectors.RATING_RULES, document))
    if rating is None:
        extraction.missing_fields.append("rating_average")
    extraction.rating_average = rating

    review_count_text = selectors.first_match(selectors.REVIEW_COUNT_RULES, document)
    if review_count_text is None:
        extraction.missing_fields.append("review_count")
    extraction.review_count = parse_int(review_count_text, default=0)

    extraction.specs = selectors.first_match(selectors.SPEC_RULES, document) or {}
    if not extraction.specs:
        extraction.missing_fields.append("specs")

    extraction.reviews = _to_review_records(
        selectors.first_match(selectors.REVIEW_RULES, document) or []
    )
    if not extraction.reviews:
        extraction.missing_fields.append("reviews")

    extraction.recommendation_urls = [
        urljoin(url, href)
        for href in selectors.first_match(selectors.RECOMMENDATION_RULES, document) or []
    ]

    # A page listing reviews without a visible counter still has reviews
    if not extraction.review_count and extraction.reviews:
        extraction.review_count = len(extraction.reviews)

    return extraction


def _to_review_records(raw_reviews) -> List[ReviewRecord]:
    records = []
    for raw in raw_reviews:
        rating = parse_rating(raw.get("rating"))
        if rating is None:
            continue
        records.append(
            ReviewRecord(
                author=raw.get("author") or None,
                rating=int(round(rating)),
                text=raw.get("text") or "",
            )
        )
    return records


class ProductPageExtractor:
    """
    Product page extractor backed by Playwright.

    Features:
    - Lazy Playwright import (only when a page is actually rendered)
    - Randomized pacing delay before every navigation
    - Navigation retries up to config.max_retries
    - Settle timeout tolerated: extraction runs on the DOM as-is
    """

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    def __init__(self, config: ScrapeConfig):
        self.config = config

    def extract(self, url: str) -> PageExtraction:
        """
        Load a product page and extract its fields.

        Raises:
            PageFetchFailed: navigation failed after all retries, or the page
                answered with an HTTP error (the parsed body is attached as
                `partial`)
        """
        page = self._render_with_retries(url)
        extraction = parse_product_page(page.html, url)

        if page.status_code >= 400:
            raise PageFetchFailed(url, f"HTTP {page.status_code}", partial=extraction)

        if extraction.missing_fields:
            logger.debug(f"Defaults used for {url}: {', '.join(extraction.missing_fields)}")
        return extraction

    def _pace(self):
        delay_ms = self.config.delay_ms + random.uniform(0, self.config.jitter_ms)
        time.sleep(delay_ms / 1000)

    def _render_with_retries(self, url: str) -> RenderedPage:
        attempts = max(1, self.config.max_retries + 1)
        last_error = None

        for attempt in range(1, attempts + 1):
            self._pace()
            try:
                return self._render(url)
            except PageFetchFailed as e:
                last_error = e
                logger.warning(f"Page load attempt {attempt}/{attempts} failed for {url}: {e.reason}")

        raise last_error

    def _render(self, url: str) -> RenderedPage:
        """Render one page in a fresh headless browser."""
        try:
            from playwright.sync_api import Error as PlaywrightError
            from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
            from playwright.sync_api import sync_playwright
        except ImportError as e:
            raise PageFetchFailed(
                url,
                "Playwright not installed. Install with: "
                "pip install playwright && playwright install chromium",
            ) from e

        with sync_playwright() as playwright:
            try:
                browser = playwright.chromium.launch(
                    headless=True,
                    args=["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"],
                )
            except PlaywrightError as e:
                raise PageFetchFailed(url, f"Could not launch browser: {e}") from e

            try:
                try:
                    context = browser.new_context(user_agent=self.USER_AGENT)
                    page = context.new_page()
                    response = page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=self.config.page_navigation_timeout_ms,
                    )
                except PlaywrightError as e:
                    raise PageFetchFailed(url, str(e)) from e

                settled = True
                try:
                    page.wait_for_load_state(
                        "networkidle",
                        timeout=self.config.page_settle_timeout_ms,
                    )
                except PlaywrightTimeoutError:
                    settled = False
                    logger.warning(f"Page {url} did not settle, extracting current DOM")

                try:
                    html = page.content()
                except PlaywrightError as e:
                    raise PageFetchFailed(url, f"Could not read page content: {e}") from e

                return RenderedPage(
                    url=url,
                    status_code=response.status if response else 200,
                    html=html,
                    settled=settled,
                )
            finally:
                browser.close()
