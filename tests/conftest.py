"""
Pytest configuration and fixtures for the catalog scraper test suite.
"""

import json
from datetime import timedelta

import httpx
import pytest
from django.utils import timezone


@pytest.fixture(scope="session")
def django_db_setup(django_db_blocker):
    """Configure the test database and run migrations."""
    from django.core.management import call_command

    with django_db_blocker.unblock():
        call_command("migrate", "--run-syncdb", verbosity=0)


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def scrape_config():
    """ScrapeConfig with pacing disabled and a fake search provider."""
    from catalog.config import ScrapeConfig

    return ScrapeConfig(
        delay_ms=0,
        jitter_ms=0,
        max_retries=0,
        listing_ttl_seconds=3600,
        detail_ttl_seconds=86400,
        site_url="https://books.example.com",
        search_app_id="testapp",
        search_api_key="test-key",
        search_index="products",
        search_timeout=5.0,
    )


def _make_hit(number, **overrides):
    """Build a search hit shaped like the provider's response."""
    hit = {
        "objectID": f"obj-{number}",
        "longTitle": f"Book {number}",
        "author": f"Author {number}",
        "fromPrice": 4.5 + number,
        "productHandle": f"book-{number}",
        "hierarchicalCategories": {"lvl0": "Fiction"},
        "imageURL": f"https://images.example.com/{number}.jpg",
    }
    hit.update(overrides)
    return hit


def _search_response(hits, total=None, facets=None, page=0):
    """JSON body of a provider query response."""
    return {
        "hits": hits,
        "nbHits": len(hits) if total is None else total,
        "page": page,
        "nbPages": 1,
        "facets": facets or {},
    }


@pytest.fixture
def make_hit():
    """Factory for provider search hits."""
    return _make_hit


@pytest.fixture
def search_response():
    """Factory for provider query response bodies."""
    return _search_response


@pytest.fixture
def search_client_factory(scrape_config):
    """
    Build a SearchApiClient backed by httpx.MockTransport.

    The handler receives the decoded request body and returns either a
    dict (sent as a 200 JSON response) or an httpx.Response.
    """
    from catalog.sources.search_client import SearchApiClient

    created = []

    def factory(handler, config=None):
        requests = []

        def transport_handler(request):
            body = json.loads(request.content or b"{}")
            requests.append(body)
            result = handler(body)
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(200, json=result)

        http_client = httpx.Client(transport=httpx.MockTransport(transport_handler))
        client = SearchApiClient(config or scrape_config, http_client=http_client)
        client.requests = requests
        created.append(client)
        return client

    yield factory

    for client in created:
        client.close()


@pytest.fixture
def navigation(db):
    """Create a NavigationSection."""
    from catalog.models import NavigationSection

    return NavigationSection.objects.create(
        title="Fiction",
        slug="fiction",
        source_url="https://books.example.com/en-gb/collections/fiction",
    )


@pytest.fixture
def category(navigation):
    """Create a Category that has never been refreshed."""
    from catalog.models import Category

    return Category.objects.create(
        navigation=navigation,
        title="Fiction",
        slug="fiction",
        source_url="https://books.example.com/en-gb/collections/fiction",
    )


@pytest.fixture
def stale_category(category):
    """The category, last refreshed two hours ago."""
    category.last_refreshed_at = timezone.now() - timedelta(hours=2)
    category.save(update_fields=["last_refreshed_at"])
    return category


@pytest.fixture
def product(category):
    """Create a Product in the category."""
    from decimal import Decimal

    from catalog.models import Product

    return Product.objects.create(
        source_id="obj-1",
        source_url="https://books.example.com/en-gb/products/book-1",
        title="Book 1",
        author="Author 1",
        price=Decimal("5.50"),
        currency="GBP",
        category=category,
        last_refreshed_at=timezone.now() - timedelta(days=2),
    )
