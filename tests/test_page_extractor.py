"""
Tests for rendered product page extraction.

Selector chains are exercised against static HTML; the browser is
replaced with mocks so no Playwright install is needed at test time
beyond the package itself.
"""

import sys
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from catalog.exceptions import PageFetchFailed
from catalog.sources.page_extractor import ProductPageExtractor, RenderedPage, parse_product_page
from catalog.sources.types import PageExtraction

PRODUCT_URL = "https://books.example.com/en-gb/products/book-1"

MICRODATA_PAGE = """
<html><body>
<div itemscope itemtype="https://schema.org/Book">
  <div itemprop="description"><p>A sweeping
     novel.</p></div>
  <div itemprop="aggregateRating">
    <meta itemprop="ratingValue" content="4.3">
    <span itemprop="reviewCount">(12 reviews)</span>
  </div>
  <table class="specs">
    <tr><th>ISBN:</th><td>9780000000001</td></tr>
    <tr><th>Pages</th><td>320</td></tr>
    <tr><td>orphan value</td></tr>
  </table>
  <div itemprop="review">
    <span itemprop="author">Ann</span>
    <meta itemprop="ratingValue" content="5">
    <p itemprop="reviewBody">Loved it</p>
  </div>
  <div itemprop="review">
    <span itemprop="author">Bob</span>
    <meta itemprop="ratingValue" content="3">
    <p itemprop="reviewBody">Fine</p>
  </div>
  <div class="recommendations">
    <a href="/en-gb/products/other-1">Other 1</a>
    <a href="/en-gb/products/other-1">Other 1 again</a>
    <a href="/en-gb/products/other-2">Other 2</a>
    <a href="/en-gb/collections/fiction">Not a product</a>
  </div>
</div>
</body></html>
"""

CLASS_BASED_PAGE = """
<html><body>
  <div class="product-description">Plain description</div>
  <span class="rating-value">4.0</span>
  <span class="review-count">3 reviews</span>
  <div class="product-details">
    <dl><dt>Format</dt><dd>Paperback</dd><dt>Language:</dt><dd>English</dd><dt>Empty</dt></dl>
  </div>
  <div class="review">
    <span class="review-author">Cat</span>
    <span class="review-rating">4 stars</span>
    <p class="review-text">Good</p>
  </div>
  <div class="review">
    <span class="review-author">No rating</span>
    <p class="review-text">Skipped</p>
  </div>
</body></html>
"""

JSON_LD_PAGE = """
<html><head>
<script type="application/ld+json">not json</script>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "WebPage", "description": "Site page"},
  {"@type": "Book", "description": "From JSON-LD",
   "aggregateRating": {"ratingValue": "4.6", "reviewCount": "210"}}
]}
</script>
</head><body><h1>Title only</h1></body></html>
"""

EMPTY_PAGE = "<html><body><h1>Page not found</h1></body></html>"


class TestParseProductPage:
    """Selector chains: first non-empty rule wins, defaults otherwise."""

    def test_microdata_page(self):
        extraction = parse_product_page(MICRODATA_PAGE, PRODUCT_URL)

        assert extraction.description == "A sweeping novel."
        assert extraction.rating_average == pytest.approx(4.3)
        assert extraction.review_count == 12
        assert extraction.specs == {"ISBN": "9780000000001", "Pages": "320"}
        assert [(r.author, r.rating, r.text) for r in extraction.reviews] == [
            ("Ann", 5, "Loved it"),
            ("Bob", 3, "Fine"),
        ]
        assert extraction.missing_fields == []

    def test_recommendation_links_are_absolute_and_distinct(self):
        extraction = parse_product_page(MICRODATA_PAGE, PRODUCT_URL)

        assert extraction.recommendation_urls == [
            "https://books.example.com/en-gb/products/other-1",
            "https://books.example.com/en-gb/products/other-2",
        ]

    def test_class_based_fallbacks(self):
        extraction = parse_product_page(CLASS_BASED_PAGE, PRODUCT_URL)

        assert extraction.description == "Plain description"
        assert extraction.rating_average == pytest.approx(4.0)
        assert extraction.review_count == 3
        assert extraction.specs == {"Format": "Paperback", "Language": "English"}
        assert len(extraction.reviews) == 1
        assert extraction.reviews[0].author == "Cat"
        assert extraction.reviews[0].rating == 4

    def test_json_ld_fallback(self):
        extraction = parse_product_page(JSON_LD_PAGE, PRODUCT_URL)

        assert extraction.description == "From JSON-LD"
        assert extraction.rating_average == pytest.approx(4.6)
        assert extraction.review_count == 210

    def test_missing_fields_use_defaults(self):
        """A page without any known markup never raises."""
        extraction = parse_product_page(EMPTY_PAGE, PRODUCT_URL)

        assert extraction.description == ""
        assert extraction.rating_average is None
        assert extraction.review_count == 0
        assert extraction.specs == {}
        assert extraction.reviews == []
        assert extraction.recommendation_urls == []
        assert set(extraction.missing_fields) == {
            "description",
            "rating_average",
            "review_count",
            "specs",
            "reviews",
        }
        assert extraction.is_empty is True

    def test_review_count_falls_back_to_listed_reviews(self):
        html = """
        <div class="review"><span class="review-author">A</span>
          <span class="review-rating">5</span><p class="review-text">x</p></div>
        <div class="review"><span class="review-author">B</span>
          <span class="review-rating">4</span><p class="review-text">y</p></div>
        """
        extraction = parse_product_page(html)

        assert extraction.review_count == 2


class TestProductPageExtractor:
    """Tests for ProductPageExtractor with the browser mocked out."""

    @pytest.fixture
    def extractor(self, scrape_config):
        return ProductPageExtractor(scrape_config)

    def test_extract_parses_rendered_html(self, extractor):
        page = RenderedPage(url=PRODUCT_URL, status_code=200, html=MICRODATA_PAGE)

        with patch.object(extractor, "_render", return_value=page) as mock_render:
            extraction = extractor.extract(PRODUCT_URL)

        mock_render.assert_called_once_with(PRODUCT_URL)
        assert extraction.description == "A sweeping novel."

    def test_http_error_raises_with_partial(self, extractor):
        page = RenderedPage(url=PRODUCT_URL, status_code=404, html=EMPTY_PAGE)

        with patch.object(extractor, "_render", return_value=page):
            with pytest.raises(PageFetchFailed) as exc_info:
                extractor.extract(PRODUCT_URL)

        assert exc_info.value.url == PRODUCT_URL
        assert "404" in exc_info.value.reason
        assert isinstance(exc_info.value.partial, PageExtraction)
        assert exc_info.value.partial.is_empty is True

    def test_retries_navigation_failures(self, scrape_config):
        extractor = ProductPageExtractor(replace(scrape_config, max_retries=2))
        page = RenderedPage(url=PRODUCT_URL, status_code=200, html=CLASS_BASED_PAGE)

        with patch.object(
            extractor,
            "_render",
            side_effect=[PageFetchFailed(PRODUCT_URL, "timeout"), page],
        ) as mock_render:
            extraction = extractor.extract(PRODUCT_URL)

        assert mock_render.call_count == 2
        assert extraction.description == "Plain description"

    def test_gives_up_after_retry_budget(self, scrape_config):
        extractor = ProductPageExtractor(replace(scrape_config, max_retries=1))

        with patch.object(
            extractor,
            "_render",
            side_effect=PageFetchFailed(PRODUCT_URL, "net::ERR_NAME_NOT_RESOLVED"),
        ) as mock_render:
            with pytest.raises(PageFetchFailed):
                extractor.extract(PRODUCT_URL)

        assert mock_render.call_count == 2

    def test_paces_before_each_navigation(self, scrape_config):
        extractor = ProductPageExtractor(replace(scrape_config, delay_ms=100, jitter_ms=0))
        page = RenderedPage(url=PRODUCT_URL, status_code=200, html=EMPTY_PAGE)

        with patch.object(extractor, "_render", return_value=page), \
             patch("catalog.sources.page_extractor.time.sleep") as mock_sleep:
            extractor.extract(PRODUCT_URL)

        mock_sleep.assert_called_once_with(0.1)


def _mock_browser(page):
    """Wire a mocked sync_playwright() context around a mocked page."""
    browser = MagicMock()
    browser.new_context.return_value.new_page.return_value = page

    playwright = MagicMock()
    playwright.chromium.launch.return_value = browser

    sync_playwright = MagicMock()
    sync_playwright.return_value.__enter__.return_value = playwright
    return sync_playwright, browser


class TestRender:
    """Tests for ProductPageExtractor._render()."""

    def test_settle_timeout_extracts_current_dom(self, scrape_config):
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = MagicMock()
        page.goto.return_value.status = 200
        page.wait_for_load_state.side_effect = PlaywrightTimeoutError("Timeout 15000ms exceeded")
        page.content.return_value = CLASS_BASED_PAGE
        sync_playwright, browser = _mock_browser(page)

        extractor = ProductPageExtractor(scrape_config)
        with patch("playwright.sync_api.sync_playwright", sync_playwright):
            rendered = extractor._render(PRODUCT_URL)

        assert rendered.settled is False
        assert rendered.status_code == 200
        assert rendered.html == CLASS_BASED_PAGE
        browser.close.assert_called_once()

    def test_navigation_error_raises_page_fetch_failed(self, scrape_config):
        from playwright.sync_api import Error as PlaywrightError

        page = MagicMock()
        page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_REFUSED")
        sync_playwright, browser = _mock_browser(page)

        extractor = ProductPageExtractor(scrape_config)
        with patch("playwright.sync_api.sync_playwright", sync_playwright):
            with pytest.raises(PageFetchFailed):
                extractor._render(PRODUCT_URL)

        browser.close.assert_called_once()

    def test_browser_launch_error_raises_page_fetch_failed(self, scrape_config):
        from playwright.sync_api import Error as PlaywrightError

        sync_playwright, browser = _mock_browser(MagicMock())
        playwright = sync_playwright.return_value.__enter__.return_value
        playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")

        extractor = ProductPageExtractor(scrape_config)
        with patch("playwright.sync_api.sync_playwright", sync_playwright):
            with pytest.raises(PageFetchFailed, match="Could not launch browser"):
                extractor._render(PRODUCT_URL)

    def test_context_error_raises_and_closes_browser(self, scrape_config):
        from playwright.sync_api import Error as PlaywrightError

        sync_playwright, browser = _mock_browser(MagicMock())
        browser.new_context.side_effect = PlaywrightError("Target closed")

        extractor = ProductPageExtractor(scrape_config)
        with patch("playwright.sync_api.sync_playwright", sync_playwright):
            with pytest.raises(PageFetchFailed):
                extractor._render(PRODUCT_URL)

        browser.close.assert_called_once()

    def test_missing_playwright_raises_page_fetch_failed(self, scrape_config):
        extractor = ProductPageExtractor(scrape_config)

        with patch.dict(sys.modules, {"playwright.sync_api": None}):
            with pytest.raises(PageFetchFailed, match="Playwright not installed"):
                extractor._render(PRODUCT_URL)

    def test_launch_failures_use_retry_budget(self, scrape_config):
        from playwright.sync_api import Error as PlaywrightError

        sync_playwright, browser = _mock_browser(MagicMock())
        playwright = sync_playwright.return_value.__enter__.return_value
        playwright.chromium.launch.side_effect = PlaywrightError("Browser crashed")

        extractor = ProductPageExtractor(replace(scrape_config, max_retries=1))
        with patch("playwright.sync_api.sync_playwright", sync_playwright):
            with pytest.raises(PageFetchFailed):
                extractor.extract(PRODUCT_URL)

        assert playwright.chromium.launch.call_count == 2
