"""
Tests for the structured search provider client.

The provider is replaced with httpx.MockTransport; pacing is patched out
of time.sleep so tests can assert on the delay.
"""

from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest

from catalog.exceptions import SourceUnavailable
from catalog.sources.search_client import (
    DEFAULT_IMAGE_URL,
    FALLBACK_CATEGORIES,
    SearchApiClient,
)


class TestSearchProducts:
    """Tests for search_products() and products_by_category()."""

    def test_returns_hits_and_total(self, search_client_factory, make_hit, search_response):
        client = search_client_factory(
            lambda body: search_response([make_hit(1), make_hit(2)], total=57)
        )

        result = client.search_products("", page_index=0, page_size=2)

        assert len(result.items) == 2
        assert result.total_count == 57
        assert result.items[0]["objectID"] == "obj-1"

    def test_page_index_is_zero_based(self, search_client_factory, search_response):
        client = search_client_factory(lambda body: search_response([]))

        client.search_products("dickens", page_index=3, page_size=40)

        body = client.requests[0]
        assert body["page"] == 3
        assert body["hitsPerPage"] == 40
        assert body["query"] == "dickens"

    def test_products_by_category_uses_facet_filter(self, search_client_factory, search_response):
        client = search_client_factory(lambda body: search_response([]))

        client.products_by_category("Fiction", 1, 20)

        assert client.requests[0]["facetFilters"] == [["hierarchicalCategories.lvl0:Fiction"]]

    def test_sends_provider_credentials(self, scrape_config, search_response):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("X-Algolia-API-Key")
            seen["app"] = request.headers.get("X-Algolia-Application-Id")
            return httpx.Response(200, json=search_response([]))

        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        with SearchApiClient(scrape_config, http_client=http_client) as client:
            client.search_products()

        assert seen["url"] == "https://testapp-dsn.algolia.net/1/indexes/products/query"
        assert seen["key"] == "test-key"
        assert seen["app"] == "testapp"

    def test_non_2xx_raises_source_unavailable(self, search_client_factory):
        client = search_client_factory(lambda body: httpx.Response(503, text="busy"))

        with pytest.raises(SourceUnavailable) as exc_info:
            client.search_products()

        assert exc_info.value.status_code == 503

    def test_transport_error_raises_source_unavailable(self, scrape_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        client = SearchApiClient(scrape_config, http_client=http_client)

        with pytest.raises(SourceUnavailable):
            client.search_products()

    def test_invalid_json_raises_source_unavailable(self, search_client_factory):
        client = search_client_factory(lambda body: httpx.Response(200, text="<html>"))

        with pytest.raises(SourceUnavailable):
            client.search_products()

    def test_no_retries_on_failure(self, search_client_factory):
        """The client itself never retries; one failure is one request."""
        client = search_client_factory(lambda body: httpx.Response(500))

        with pytest.raises(SourceUnavailable):
            client.search_products()

        assert len(client.requests) == 1


class TestPacing:
    """Every outbound call is preceded by a randomized delay."""

    def test_sleeps_base_delay_plus_jitter(self, scrape_config, search_response):
        from dataclasses import replace

        config = replace(scrape_config, delay_ms=500, jitter_ms=500)
        http_client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=search_response([])))
        )
        client = SearchApiClient(config, http_client=http_client)

        with patch("catalog.sources.search_client.time.sleep") as mock_sleep, \
             patch("catalog.sources.search_client.random.uniform", return_value=250.0) as mock_uniform:
            client.search_products()
            client.search_products()

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(0.75)
        mock_uniform.assert_called_with(0, 500)

    def test_delay_stays_within_bounds(self, scrape_config, search_response):
        from dataclasses import replace

        config = replace(scrape_config, delay_ms=200, jitter_ms=100)
        http_client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=search_response([])))
        )
        client = SearchApiClient(config, http_client=http_client)

        with patch("catalog.sources.search_client.time.sleep") as mock_sleep:
            for _ in range(5):
                client.search_products()

        for call in mock_sleep.call_args_list:
            assert 0.2 <= call.args[0] <= 0.3


class TestListCategories:
    def test_reads_category_facet(self, search_client_factory, search_response):
        facets = {"hierarchicalCategories.lvl0": {"Fiction": 120, "History": 40}}
        client = search_client_factory(lambda body: search_response([], facets=facets))

        assert client.list_categories() == ["Fiction", "History"]

    def test_provider_error_returns_fallback(self, search_client_factory):
        client = search_client_factory(lambda body: httpx.Response(500))

        categories = client.list_categories()

        assert categories == FALLBACK_CATEGORIES
        assert categories is not FALLBACK_CATEGORIES

    def test_missing_facet_returns_fallback(self, search_client_factory, search_response):
        client = search_client_factory(lambda body: search_response([]))

        assert client.list_categories() == FALLBACK_CATEGORIES


class TestFindAndRelated:
    def test_find_by_handle_returns_first_hit(self, search_client_factory, make_hit, search_response):
        client = search_client_factory(lambda body: search_response([make_hit(7), make_hit(8)]))

        hit = client.find_by_handle("book-7")

        assert hit["objectID"] == "obj-7"
        assert client.requests[0]["query"] == "book-7"

    def test_find_by_handle_none_on_error(self, search_client_factory):
        client = search_client_factory(lambda body: httpx.Response(502))

        assert client.find_by_handle("book-7") is None

    def test_related_products_excludes_self(self, search_client_factory, make_hit, search_response):
        hits = [make_hit(n) for n in range(1, 5)]
        client = search_client_factory(lambda body: search_response(hits))

        related = client.related_products("Fiction", exclude_handle="book-2", limit=2)

        assert [h["productHandle"] for h in related] == ["book-1", "book-3"]
        assert client.requests[0]["hitsPerPage"] == 3

    def test_related_products_empty_on_error(self, search_client_factory):
        client = search_client_factory(lambda body: httpx.Response(500))

        assert client.related_products("Fiction", exclude_handle="book-1") == []


class TestFieldExtraction:
    """The hit schema varies; each field has a priority list and a default."""

    @pytest.fixture
    def client(self, scrape_config):
        return SearchApiClient(scrape_config)

    def test_title_priority(self, client):
        assert client.extract_title({"longTitle": "Long", "shortTitle": "Short"}) == "Long"
        assert client.extract_title({"shortTitle": "Short", "title": "Plain"}) == "Short"
        assert client.extract_title({"name": "Named"}) == "Named"
        assert client.extract_title({}) == "Unknown Title"

    def test_blank_title_falls_through(self, client):
        assert client.extract_title({"longTitle": "   ", "shortTitle": "Short"}) == "Short"

    def test_author_list(self, client):
        assert client.extract_author({"authors": ["", "Jane Austen"]}) == "Jane Austen"
        assert client.extract_author({}) is None

    def test_price_priority(self, client):
        assert client.extract_price({"fromPrice": 3.5, "price": 9}) == Decimal("3.50")
        assert client.extract_price({"bestConditionPrice": "4.25"}) == Decimal("4.25")
        assert client.extract_price({"fromPrice": -2, "price": 7}) == Decimal("7.00")
        assert client.extract_price({}) is None

    def test_image_default(self, client):
        assert client.extract_image_url({}) == DEFAULT_IMAGE_URL

    def test_category_fallbacks(self, client):
        assert client.extract_category({"hierarchicalCategories": {"lvl0": ["Fiction"]}}) == "Fiction"
        assert client.extract_category({"hierarchicalCategories": {"lvl1": "Fiction > Crime"}}) == "Fiction > Crime"
        assert client.extract_category({"categories": ["History"]}) == "History"
        assert client.extract_category({}) == "General"

    def test_to_product_record(self, client, make_hit):
        record = client.to_product_record(make_hit(3))

        assert record.source_id == "obj-3"
        assert record.source_url == "https://books.example.com/en-gb/products/book-3"
        assert record.title == "Book 3"
        assert record.author == "Author 3"
        assert record.price == Decimal("7.50")
        assert record.currency == "GBP"
        assert record.category_name == "Fiction"

    @pytest.mark.parametrize(
        "hit",
        [None, "not-a-dict", {"productHandle": "x"}, {"objectID": "1"}],
    )
    def test_to_product_record_rejects_hits_without_natural_key(self, client, hit):
        with pytest.raises(ValueError):
            client.to_product_record(hit)

    def test_url_builders(self, client):
        assert client.build_product_url("emma") == "https://books.example.com/en-gb/products/emma"
        assert client.build_category_url("Children's Books") == (
            "https://books.example.com/en-gb/collections/childrens-books"
        )
        assert client.build_section_url("Non-Fiction") == (
            "https://books.example.com/en-gb/collections/non-fiction"
        )
