"""
Catalog upserts keyed by natural key.

Every write goes through `_upsert`: look the row up by each natural key
in turn, update it when found, otherwise insert. The insert runs inside
a savepoint; when a concurrent writer wins the race the unique
constraint raises IntegrityError, and the row is re-fetched and updated
instead. PersistenceConflict only escapes when the conflicting row
cannot be found again.

Usage:
    from catalog.services.catalog_saver import upsert_product

    product, created = upsert_product(record, category=category)
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from django.db import IntegrityError, transaction
from django.utils import timezone

from catalog.exceptions import PersistenceConflict
from catalog.models import Category, NavigationSection, Product, ProductDetail, Review
from catalog.sources.types import ProductRecord, ReviewRecord
from catalog.utils.normalization import slugify

logger = logging.getLogger(__name__)


def _find(model, lookups: Sequence[Dict[str, Any]]):
    """Return the first row matching any of the lookups, in order."""
    for lookup in lookups:
        if any(value in (None, "") for value in lookup.values()):
            continue
        existing = model.objects.filter(**lookup).first()
        if existing is not None:
            return existing
    return None


def _apply(instance, values: Dict[str, Any]):
    for name, value in values.items():
        setattr(instance, name, value)
    with transaction.atomic():
        instance.save()
    return instance


def _upsert(model, lookups: Sequence[Dict[str, Any]], values: Dict[str, Any]) -> Tuple[Any, bool]:
    """
    Insert-or-update a row by natural key.

    Args:
        model: Model class
        lookups: Natural-key lookups tried in order; all are used on insert
        values: Mutable fields written on both insert and update

    Returns:
        Tuple of (instance, was_created)
    """
    existing = _find(model, lookups)
    if existing is not None:
        try:
            return _apply(existing, values), False
        except IntegrityError as e:
            # An updated natural key belongs to another row
            raise PersistenceConflict(model.__name__, lookups[0]) from e

    create_values: Dict[str, Any] = {}
    for lookup in lookups:
        create_values.update(lookup)
    create_values.update(values)

    try:
        with transaction.atomic():
            instance = model.objects.create(**create_values)
        return instance, True
    except IntegrityError as e:
        # Race condition - row was created between lookup and insert
        logger.warning(f"IntegrityError creating {model.__name__} {lookups[0]}, retrying as update: {e}")

    existing = _find(model, lookups)
    if existing is None:
        raise PersistenceConflict(model.__name__, lookups[0])
    try:
        return _apply(existing, values), False
    except IntegrityError as e:
        raise PersistenceConflict(model.__name__, lookups[0]) from e


def _rating_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


# =============================================================================
# Navigation / Category
# =============================================================================


def upsert_navigation(
    title: str,
    source_url: str = "",
    listed_at=None,
) -> Tuple[NavigationSection, bool]:
    """
    Upsert a navigation section by slug, then by title.

    Only listed_at is stamped; last_refreshed_at belongs to the section's
    category refresh.
    """
    slug = slugify(title)
    section, created = _upsert(
        NavigationSection,
        [{"slug": slug}, {"title": title}],
        {"source_url": source_url, "listed_at": listed_at or timezone.now()},
    )
    logger.debug(f"{'Created' if created else 'Updated'} navigation section: {title}")
    return section, created


def upsert_category(
    navigation: NavigationSection,
    title: str,
    source_url: str = "",
    parent: Optional[Category] = None,
) -> Tuple[Category, bool]:
    """
    Upsert a category by (navigation, slug).

    last_refreshed_at is left alone: on a category it records when the
    category's products were last fetched.
    """
    values: Dict[str, Any] = {"title": title, "source_url": source_url}
    if parent is not None:
        values["parent"] = parent

    category, created = _upsert(
        Category,
        [{"navigation": navigation, "slug": slugify(title)}],
        values,
    )
    logger.debug(f"{'Created' if created else 'Updated'} category: {title}")
    return category, created


# =============================================================================
# Product
# =============================================================================


def upsert_product(
    record: ProductRecord,
    category: Optional[Category] = None,
    refreshed_at=None,
) -> Tuple[Product, bool]:
    """
    Upsert a product by source_id, then by source_url.

    A missing price in the record keeps the stored price.
    """
    lookups = [{"source_id": record.source_id}, {"source_url": record.source_url}]
    values: Dict[str, Any] = {
        "source_url": record.source_url,
        "title": record.title,
        "author": record.author,
        "currency": record.currency,
        "image_url": record.image_url,
        "last_refreshed_at": refreshed_at or timezone.now(),
    }
    if record.price is not None:
        values["price"] = record.price
    if category is not None:
        values["category"] = category

    try:
        product, created = _upsert(Product, lookups, values)
    except PersistenceConflict:
        existing = Product.objects.filter(source_id=record.source_id).first()
        if existing is None:
            raise
        # The new URL is owned by another product; keep the stored one
        logger.warning(
            f"source_url {record.source_url} already belongs to another product, "
            f"keeping {existing.source_url} for {record.source_id}"
        )
        values.pop("source_url")
        product, created = _apply(existing, values), False
    logger.debug(f"{'Created' if created else 'Updated'} product: {record.title}")
    return product, created


# =============================================================================
# ProductDetail / Review
# =============================================================================


def upsert_product_detail(
    product: Product,
    description: str = "",
    specs: Optional[Dict[str, str]] = None,
    rating_average=None,
    review_count: int = 0,
    recommendations: Optional[List[str]] = None,
    refreshed_at=None,
    stale: bool = False,
) -> Tuple[ProductDetail, bool]:
    """
    Upsert the single ProductDetail row of a product.

    With stale=True last_refreshed_at is cleared so the next detail
    refresh fetches the page again (used for placeholder rows).
    """
    if stale:
        refreshed_at = None
    elif refreshed_at is None:
        refreshed_at = timezone.now()

    values = {
        "description": description or "",
        "specs": specs or {},
        "rating_average": _rating_decimal(rating_average),
        "review_count": review_count or 0,
        "recommendations": recommendations or [],
        "last_refreshed_at": refreshed_at,
    }
    detail, created = _upsert(ProductDetail, [{"product": product}], values)
    logger.debug(f"{'Created' if created else 'Updated'} detail for product {product.id}")
    return detail, created


def replace_reviews(product: Product, reviews: Sequence[ReviewRecord]) -> List[Review]:
    """
    Atomically replace a product's review set (delete then insert).

    The product row is locked first so concurrent detail jobs for the
    same product replace the set one after the other.
    """
    with transaction.atomic():
        Product.objects.select_for_update().get(pk=product.pk)
        deleted, _ = Review.objects.filter(product=product).delete()
        created = Review.objects.bulk_create([
            Review(
                product=product,
                author=review.author,
                rating=review.rating,
                text=review.text or "",
            )
            for review in reviews
        ])

    logger.debug(f"Replaced {deleted} reviews with {len(created)} for product {product.id}")
    return created
