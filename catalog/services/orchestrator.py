"""
Catalog Orchestrator.

Four entry points, one per scrape target type. Each one:

1. Resolves the parent entity (NotFound if missing; a failed job is
   recorded for the attempt).
2. Unless force=True, consults the staleness check and returns the
   persisted rows when they are fresh. No network call, no job.
3. Otherwise creates a ScrapeJob, moves it to in_progress and calls the
   matching source adapter.
4. Upserts every returned item by natural key. A bad item is logged and
   skipped; it never aborts the batch.
5. Updates parent aggregates and completes the job.

Listing paths (navigation, category, product) mark the job failed and
re-raise on adapter errors. The detail path degrades to the stored
detail, a partial extraction or a placeholder row instead.

Adapter calls within one job run sequentially so the per-request pacing
delay holds; concurrency comes from running several jobs on the worker
pool.
"""

import logging
from typing import Any, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from catalog.config import ScrapeConfig
from catalog.exceptions import NotFound
from catalog.models import (
    Category,
    NavigationSection,
    Product,
    ProductDetail,
    ScrapeJob,
    ScrapeTargetType,
)
from catalog.monitoring import capture_scrape_error
from catalog.services import job_tracker
from catalog.services.catalog_saver import (
    replace_reviews,
    upsert_category,
    upsert_navigation,
    upsert_product,
    upsert_product_detail,
)
from catalog.services.types import RefreshResult
from catalog.sources.page_extractor import ProductPageExtractor
from catalog.sources.search_client import SearchApiClient
from catalog.sources.types import PageExtraction
from catalog.utils.grouping import filter_categories_for_section, group_categories_into_sections
from catalog.utils.staleness import is_stale, seconds_until_stale

logger = logging.getLogger(__name__)

PLACEHOLDER_DESCRIPTION = "Failed to load description"


def get_cached_products(category: Category, page: int = 1, limit: int = 20) -> RefreshResult:
    """One page of a category's stored products, ordered by title."""
    page = max(1, int(page))
    limit = max(1, int(limit))
    offset = (page - 1) * limit

    queryset = Product.objects.filter(category=category).order_by("title")
    return RefreshResult(
        items=list(queryset[offset:offset + limit]),
        # Stored rows can be fewer than the provider total when only some pages were fetched
        total=max(queryset.count(), category.product_count),
        from_cache=True,
    )


class CatalogOrchestrator:
    """
    Refreshes the cached catalog from the two source adapters.

    The orchestrator is the only writer of catalog rows and ScrapeJob rows.
    Adapters and config are injected so tests can supply fakes.
    """

    def __init__(
        self,
        config: ScrapeConfig,
        search_client: Optional[SearchApiClient] = None,
        page_extractor: Optional[ProductPageExtractor] = None,
    ):
        self.config = config
        self.search_client = search_client or SearchApiClient(config)
        self.page_extractor = page_extractor or ProductPageExtractor(config)

    def run(
        self,
        job_type: str,
        entity_id=None,
        force: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> RefreshResult:
        """Dispatch a validated job payload to the matching entry point."""
        if job_type == ScrapeTargetType.NAVIGATION:
            return self.refresh_navigations(force=force)
        if job_type == ScrapeTargetType.CATEGORY:
            return self.refresh_categories(entity_id, force=force)
        if job_type == ScrapeTargetType.PRODUCT:
            return self.refresh_products(entity_id, page=page, limit=limit, force=force)
        if job_type == ScrapeTargetType.PRODUCT_DETAIL:
            return self.refresh_product_detail(entity_id, force=force)
        raise ValueError(f"Unknown job type: {job_type}")

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def refresh_navigations(self, force: bool = False) -> RefreshResult:
        """
        Rebuild navigation sections from the provider's category facet.

        Sections returned by the last navigation refresh are served from
        the store until that refresh is stale. Sections the provider no
        longer returns are kept but not listed.
        """
        ttl = self.config.listing_ttl_seconds
        latest = NavigationSection.objects.aggregate(latest=Max("listed_at"))["latest"]
        if not force and not is_stale(latest, ttl):
            sections = list(NavigationSection.objects.filter(listed_at=latest).order_by("title"))
            logger.info(
                f"Using {len(sections)} cached navigation sections "
                f"(stale in {seconds_until_stale(latest, ttl):.0f}s)"
            )
            return RefreshResult(items=sections, total=len(sections), from_cache=True)

        job = job_tracker.begin_job(f"{self.config.site_url}/en-gb", ScrapeTargetType.NAVIGATION)
        try:
            category_names = self.search_client.list_categories()
            groups = group_categories_into_sections(category_names)
            if not groups:
                raise ValueError("No categories found from search provider")

            listed_at = timezone.now()
            sections = []
            skipped = 0
            for title in groups:
                try:
                    section, _ = upsert_navigation(
                        title,
                        self.search_client.build_section_url(title),
                        listed_at=listed_at,
                    )
                except Exception as e:
                    skipped += 1
                    logger.warning(f"Skipping navigation section {title}: {e}")
                    continue
                sections.append(section)
        except Exception as e:
            self._fail(job, e)
            raise

        job_tracker.complete_job(job)
        logger.info(f"Refreshed {len(sections)} navigation sections")
        return RefreshResult(items=sections, total=len(sections), job_id=job.id, skipped=skipped)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def refresh_categories(self, navigation_id, force: bool = False) -> RefreshResult:
        """
        Refresh the categories of one navigation section.

        Provider categories are filtered by the section's keyword rules and
        capped at config.max_categories_per_section.
        """
        section = self._resolve(
            NavigationSection, navigation_id, ScrapeTargetType.CATEGORY, "NavigationSection"
        )

        cached = list(section.categories.order_by("title"))
        if not force and cached and not is_stale(
            section.last_refreshed_at, self.config.listing_ttl_seconds
        ):
            logger.info(f"Using cached categories for navigation: {section.title}")
            return RefreshResult(items=cached, total=len(cached), from_cache=True)

        job = job_tracker.begin_job(section.source_url, ScrapeTargetType.CATEGORY)
        try:
            logger.info(f"Fetching categories for: {section.title}")
            names = filter_categories_for_section(section.title, self.search_client.list_categories())
            names = names[: self.config.max_categories_per_section]

            categories = []
            skipped = 0
            for name in names:
                try:
                    category, _ = upsert_category(
                        section, name, self.search_client.build_category_url(name)
                    )
                except Exception as e:
                    skipped += 1
                    logger.warning(f"Skipping category {name}: {e}")
                    continue
                categories.append(category)

            section.last_refreshed_at = timezone.now()
            section.save(update_fields=["last_refreshed_at", "updated_at"])
        except Exception as e:
            self._fail(job, e)
            raise

        job_tracker.complete_job(job)
        logger.info(f"Successfully fetched {len(categories)} categories for {section.title}")
        return RefreshResult(
            items=categories, total=len(categories), job_id=job.id, skipped=skipped
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def refresh_products(
        self,
        category_id,
        page: int = 1,
        limit: int = 20,
        force: bool = False,
    ) -> RefreshResult:
        """
        Refresh one page of a category's products.

        Args:
            category_id: Category primary key
            page: 1-based page number
            limit: Page size
            force: Skip the staleness check

        Returns:
            RefreshResult whose count is the number of persisted products
            and whose total is the provider's reported total
        """
        page = max(1, int(page))
        limit = max(1, int(limit))
        category = self._resolve(Category, category_id, ScrapeTargetType.PRODUCT, "Category")

        ttl = self.config.listing_ttl_seconds
        if not force and not is_stale(category.last_refreshed_at, ttl):
            cached = get_cached_products(category, page, limit)
            # Freshness is per category; a later page may never have been fetched
            past_last_page = (page - 1) * limit >= cached.total
            if cached.items or page == 1 or past_last_page:
                logger.info(
                    f"Using cached products for category: {category.title} "
                    f"(stale in {seconds_until_stale(category.last_refreshed_at, ttl):.0f}s)"
                )
                return cached
            logger.info(f"No cached products on page {page} of {category.title}, fetching")

        job = job_tracker.begin_job(category.source_url, ScrapeTargetType.PRODUCT)
        try:
            logger.info(f"Fetching products for category: {category.title} (page {page}, limit {limit})")
            result = self.search_client.products_by_category(category.title, page - 1, limit)

            refreshed_at = timezone.now()
            products = []
            skipped = 0
            for position, hit in enumerate(result.items, start=1):
                try:
                    record = self.search_client.to_product_record(hit)
                    product, _ = upsert_product(record, category=category, refreshed_at=refreshed_at)
                except Exception as e:
                    skipped += 1
                    hit_id = hit.get("objectID") if isinstance(hit, dict) else None
                    logger.warning(f"Skipping product {hit_id or position} in {category.title}: {e}")
                    continue
                products.append(product)

            # Last writer wins on these denormalized fields
            category.product_count = result.total_count
            category.last_refreshed_at = refreshed_at
            category.save(update_fields=["product_count", "last_refreshed_at", "updated_at"])
        except Exception as e:
            self._fail(job, e)
            raise

        job_tracker.complete_job(job)
        logger.info(
            f"Successfully scraped {len(products)} products "
            f"(total available: {result.total_count}, skipped: {skipped})"
        )
        return RefreshResult(
            items=products, total=result.total_count, job_id=job.id, skipped=skipped
        )

    # ------------------------------------------------------------------
    # Product detail
    # ------------------------------------------------------------------

    def refresh_product_detail(self, product_id, force: bool = False) -> RefreshResult:
        """
        Refresh a product's detail and reviews from its rendered page.

        Never raises for page or persistence failures: the job is marked
        failed and the stored detail (or a partial extraction, or a
        placeholder row) is returned with success=False.
        """
        product = self._resolve(Product, product_id, ScrapeTargetType.PRODUCT_DETAIL, "Product")

        detail = ProductDetail.objects.filter(product=product).first()
        if not force and detail is not None and not is_stale(
            detail.last_refreshed_at, self.config.detail_ttl_seconds
        ):
            logger.info(f"Using cached detail for product: {product.title}")
            return RefreshResult(items=[detail], total=1, from_cache=True)

        job = job_tracker.begin_job(product.source_url, ScrapeTargetType.PRODUCT_DETAIL)
        try:
            logger.info(f"Scraping detail for product: {product.title}")
            extraction = self.page_extractor.extract(product.source_url)
            detail = self._save_detail(product, extraction)
        except Exception as e:
            self._fail(job, e)
            return self._fallback_detail(product, job, e)

        job_tracker.complete_job(job)
        logger.info(f"Successfully scraped detail for: {product.title}")
        return RefreshResult(items=[detail], total=1, job_id=job.id)

    def _save_detail(self, product: Product, extraction: PageExtraction) -> ProductDetail:
        recommendations = extraction.recommendation_urls or self._related_product_urls(product)
        refreshed_at = timezone.now()

        with transaction.atomic():
            detail, _ = upsert_product_detail(
                product,
                description=extraction.description,
                specs=extraction.specs,
                rating_average=extraction.rating_average,
                review_count=extraction.review_count,
                recommendations=recommendations,
                refreshed_at=refreshed_at,
            )
            replace_reviews(product, extraction.reviews)

            product.last_refreshed_at = refreshed_at
            product.save(update_fields=["last_refreshed_at", "updated_at"])
        return detail

    def _fallback_detail(self, product: Product, job: ScrapeJob, error: Exception) -> RefreshResult:
        """Best available detail after a failed page scrape."""
        existing = ProductDetail.objects.filter(product=product).first()
        if existing is not None:
            logger.warning(f"Returning stored detail for {product.title} after failed scrape")
            return RefreshResult(
                items=[existing], total=1, job_id=job.id, success=False, error=str(error)
            )

        partial = getattr(error, "partial", None)
        if isinstance(partial, PageExtraction) and not partial.is_empty:
            logger.warning(f"Saving partial detail for {product.title} after failed scrape")
            with transaction.atomic():
                detail, _ = upsert_product_detail(
                    product,
                    description=partial.description,
                    specs=partial.specs,
                    rating_average=partial.rating_average,
                    review_count=partial.review_count,
                    recommendations=partial.recommendation_urls,
                    stale=True,
                )
                replace_reviews(product, partial.reviews)
        else:
            logger.warning(f"Saving placeholder detail for {product.title} after failed scrape")
            detail, _ = upsert_product_detail(
                product, description=PLACEHOLDER_DESCRIPTION, stale=True
            )

        return RefreshResult(items=[detail], total=1, job_id=job.id, success=False, error=str(error))

    def _related_product_urls(self, product: Product) -> List[str]:
        """URLs of products in the same category, used when the page lists none."""
        if product.category_id is None:
            return []

        handle = product.source_url.rstrip("/").rsplit("/", 1)[-1]
        hits = self.search_client.related_products(
            product.category.title,
            exclude_handle=handle,
            limit=self.config.related_products_limit,
        )

        urls = []
        for hit in hits:
            related_handle = self.search_client.extract_handle(hit)
            if related_handle:
                urls.append(self.search_client.build_product_url(related_handle))
        return urls

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, model, entity_id, target_type: str, entity_name: str) -> Any:
        """
        Load a parent entity or raise NotFound.

        A missing entity is still recorded as a failed job for the attempt.
        """
        try:
            instance = model.objects.filter(pk=entity_id).first()
        except (ValidationError, ValueError):
            instance = None

        if instance is None:
            error = NotFound(entity_name, entity_id)
            job = job_tracker.begin_job(f"{target_type}:{entity_id}", target_type)
            job_tracker.fail_job(job, error)
            raise error
        return instance

    def _fail(self, job: ScrapeJob, error: Exception):
        logger.exception(f"{job.target_type} refresh failed for {job.target_url}")
        job_tracker.fail_job(job, error)
        capture_scrape_error(error, job=job)


def get_catalog_orchestrator() -> CatalogOrchestrator:
    """Build an orchestrator from Django settings."""
    return CatalogOrchestrator(ScrapeConfig.from_settings())
