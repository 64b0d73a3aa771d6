"""
Catalog models.

Navigation sections group categories, categories own products, and each
product may carry one ProductDetail row plus its reviews. ScrapeJob rows
record every orchestration call and its lifecycle.

Natural keys (title/slug for sections, navigation+slug for categories,
source_id and source_url for products, product for detail) are enforced
with unique constraints; the orchestrator relies on them as the final
backstop when two workers upsert the same key.
"""

import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from catalog.exceptions import InvalidJobTransition


class ScrapeTargetType(models.TextChoices):
    """Entity type targeted by a scrape job."""

    NAVIGATION = "navigation", "Navigation"
    CATEGORY = "category", "Category"
    PRODUCT = "product", "Product"
    PRODUCT_DETAIL = "product_detail", "Product Detail"


class ScrapeJobStatus(models.TextChoices):
    """Status of a scrape job."""

    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


TERMINAL_JOB_STATUSES = frozenset({ScrapeJobStatus.COMPLETED, ScrapeJobStatus.FAILED})


class NavigationSection(models.Model):
    """Top-level navigation heading (e.g. "Fiction", "Children's Books")."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(max_length=255, unique=True)
    source_url = models.URLField(max_length=2000, blank=True, default="")

    # Last navigation refresh that returned this section
    listed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    # Last refresh of this section's categories
    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "navigation_sections"
        ordering = ["title"]

    def __str__(self):
        return self.title


class Category(models.Model):
    """
    A product category inside a navigation section.

    product_count is a denormalized, advisory value taken from the search
    provider's reported total on each successful product refresh.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    navigation = models.ForeignKey(
        NavigationSection, on_delete=models.CASCADE, related_name="categories"
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    product_count = models.IntegerField(default=0)
    source_url = models.URLField(max_length=2000, blank=True, default="")

    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "categories"
        ordering = ["title"]
        verbose_name_plural = "categories"
        constraints = [
            models.UniqueConstraint(
                fields=["navigation", "slug"],
                name="uniq_category_slug_per_navigation",
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.navigation_id})"


class Product(models.Model):
    """
    A catalog product.

    Either source_id or source_url is enough to identify a product; both
    are unique so that either adapter can be the write path.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_id = models.CharField(max_length=255, unique=True)
    source_url = models.URLField(max_length=1000, unique=True)

    title = models.CharField(max_length=500)
    author = models.CharField(max_length=255, null=True, blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    currency = models.CharField(max_length=3, default="GBP")
    image_url = models.URLField(max_length=2000, blank=True, default="")

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )

    last_refreshed_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering = ["title"]

    def __str__(self):
        return self.title


class ProductDetail(models.Model):
    """Rich product content scraped from the rendered product page."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.OneToOneField(
        Product, on_delete=models.CASCADE, related_name="detail"
    )

    description = models.TextField(blank=True, default="")
    specs = models.JSONField(default=dict, blank=True)
    rating_average = models.DecimalField(
        max_digits=3, decimal_places=2, null=True, blank=True
    )
    review_count = models.IntegerField(default=0)
    recommendations = models.JSONField(default=list, blank=True)

    last_refreshed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "product_details"

    def __str__(self):
        return f"Detail for {self.product_id}"


class Review(models.Model):
    """A customer review; the full set is replaced on every detail scrape."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="reviews"
    )

    author = models.CharField(max_length=255, null=True, blank=True)
    rating = models.IntegerField()
    text = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "reviews"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Review {self.rating}/5 for {self.product_id}"


class ScrapeJob(models.Model):
    """
    Tracks one orchestration call.

    Lifecycle: pending -> in_progress -> completed | failed. Terminal
    states are final; a new call always creates a new row.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    target_url = models.CharField(max_length=2000, db_index=True, blank=True, default="")
    target_type = models.CharField(max_length=20, choices=ScrapeTargetType.choices)

    status = models.CharField(
        max_length=20,
        choices=ScrapeJobStatus.choices,
        default=ScrapeJobStatus.PENDING,
        db_index=True,
    )

    # Timing
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    error_log = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "scrape_jobs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="scrape_jobs_status_created_idx"),
            models.Index(fields=["target_type", "created_at"], name="scrape_jobs_type_created_idx"),
        ]

    def __str__(self):
        return f"Job {self.id} - {self.target_type} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    @property
    def duration_seconds(self):
        """Calculate job duration."""
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def start(self):
        """Mark job as in progress."""
        if self.status != ScrapeJobStatus.PENDING:
            raise InvalidJobTransition(self.id, self.status, ScrapeJobStatus.IN_PROGRESS)
        self.status = ScrapeJobStatus.IN_PROGRESS
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at", "updated_at"])

    def complete(self):
        """Mark job as completed."""
        self._finish(ScrapeJobStatus.COMPLETED)

    def fail(self, error_log: str):
        """Mark job as failed and record the error text."""
        self.error_log = error_log or ""
        self._finish(ScrapeJobStatus.FAILED)

    def _finish(self, status: str):
        if self.status != ScrapeJobStatus.IN_PROGRESS:
            raise InvalidJobTransition(self.id, self.status, status)
        self.status = status
        self.finished_at = timezone.now()
        self.save(update_fields=["status", "finished_at", "error_log", "updated_at"])
