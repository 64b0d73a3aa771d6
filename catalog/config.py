"""
Immutable scrape configuration.

The orchestrator and both source adapters receive a ScrapeConfig at
construction instead of reading Django settings on every call, so tests
can inject their own values.
"""

from dataclasses import dataclass

from django.conf import settings

from catalog.utils.staleness import DEFAULT_DETAIL_TTL_SECONDS, DEFAULT_LISTING_TTL_SECONDS


@dataclass(frozen=True)
class ScrapeConfig:
    """Pacing, retry, TTL and provider settings for one scraper instance."""

    delay_ms: int = 500
    jitter_ms: int = 500
    max_retries: int = 3
    listing_ttl_seconds: int = DEFAULT_LISTING_TTL_SECONDS
    detail_ttl_seconds: int = DEFAULT_DETAIL_TTL_SECONDS

    site_url: str = "https://www.worldofbooks.com"
    default_currency: str = "GBP"

    search_app_id: str = ""
    search_api_key: str = ""
    search_index: str = ""
    search_timeout: float = 30.0

    page_settle_timeout_ms: int = 15000
    page_navigation_timeout_ms: int = 30000

    # Upper bound on categories persisted per section refresh
    max_categories_per_section: int = 20
    # Related products stored when a page has no recommendation links
    related_products_limit: int = 6

    @property
    def search_base_url(self) -> str:
        return f"https://{self.search_app_id}-dsn.algolia.net/1/indexes/{self.search_index}"

    @classmethod
    def from_settings(cls) -> "ScrapeConfig":
        """Build a config from Django settings (environment-backed)."""
        return cls(
            delay_ms=getattr(settings, "SCRAPE_DELAY_MS", 500),
            jitter_ms=getattr(settings, "SCRAPE_JITTER_MS", 500),
            max_retries=getattr(settings, "SCRAPE_MAX_RETRIES", 3),
            listing_ttl_seconds=getattr(settings, "CACHE_TTL_SECONDS", DEFAULT_LISTING_TTL_SECONDS),
            detail_ttl_seconds=getattr(settings, "DETAIL_CACHE_TTL_SECONDS", DEFAULT_DETAIL_TTL_SECONDS),
            site_url=getattr(settings, "CATALOG_SITE_URL", "https://www.worldofbooks.com").rstrip("/"),
            default_currency=getattr(settings, "CATALOG_DEFAULT_CURRENCY", "GBP"),
            search_app_id=getattr(settings, "SEARCH_API_APP_ID", ""),
            search_api_key=getattr(settings, "SEARCH_API_KEY", ""),
            search_index=getattr(settings, "SEARCH_API_INDEX", ""),
            search_timeout=getattr(settings, "SEARCH_API_TIMEOUT", 30.0),
            page_settle_timeout_ms=getattr(settings, "PAGE_SETTLE_TIMEOUT_MS", 15000),
            page_navigation_timeout_ms=getattr(settings, "PAGE_NAVIGATION_TIMEOUT_MS", 30000),
        )
