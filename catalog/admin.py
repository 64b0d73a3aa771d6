"""
Django admin configuration for catalog models.

Catalog rows are written by the orchestrator; the admin is mainly for
inspection. Scrape jobs are read-only.
"""

from django.contrib import admin
from django.utils.html import format_html

from catalog.models import (
    Category,
    NavigationSection,
    Product,
    ProductDetail,
    Review,
    ScrapeJob,
)


class CategoryInline(admin.TabularInline):
    model = Category
    fields = ["title", "slug", "product_count", "last_refreshed_at"]
    readonly_fields = ["last_refreshed_at"]
    extra = 0
    show_change_link = True


@admin.register(NavigationSection)
class NavigationSectionAdmin(admin.ModelAdmin):
    list_display = ["title", "slug", "category_count", "listed_at", "last_refreshed_at"]
    search_fields = ["title", "slug"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [CategoryInline]

    def category_count(self, obj):
        return obj.categories.count()
    category_count.short_description = "Categories"


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["title", "navigation", "parent", "product_count", "last_refreshed_at"]
    list_filter = ["navigation"]
    search_fields = ["title", "slug"]
    readonly_fields = ["id", "created_at", "updated_at"]
    raw_id_fields = ["parent"]


class ReviewInline(admin.TabularInline):
    model = Review
    fields = ["author", "rating", "text", "created_at"]
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["title", "author", "price", "currency", "category", "last_refreshed_at"]
    list_filter = ["currency", "category__navigation"]
    search_fields = ["title", "author", "source_id", "source_url"]
    readonly_fields = ["id", "source_id", "created_at", "updated_at"]
    raw_id_fields = ["category"]
    inlines = [ReviewInline]


@admin.register(ProductDetail)
class ProductDetailAdmin(admin.ModelAdmin):
    list_display = ["product", "rating_average", "review_count", "last_refreshed_at"]
    search_fields = ["product__title"]
    readonly_fields = ["id", "created_at", "updated_at"]
    raw_id_fields = ["product"]


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["product", "author", "rating", "created_at"]
    list_filter = ["rating"]
    search_fields = ["product__title", "author", "text"]
    raw_id_fields = ["product"]


@admin.register(ScrapeJob)
class ScrapeJobAdmin(admin.ModelAdmin):
    """Read-only view of scrape job status and timing."""

    list_display = [
        "id_short",
        "target_type",
        "status_badge",
        "target_url",
        "started_at",
        "finished_at",
        "duration_display",
    ]
    list_filter = [
        "status",
        "target_type",
        ("created_at", admin.DateFieldListFilter),
    ]
    search_fields = ["target_url", "id"]
    readonly_fields = [
        "id",
        "target_url",
        "target_type",
        "status",
        "created_at",
        "started_at",
        "finished_at",
        "error_log",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        ("Job Information", {
            "fields": ("id", "target_type", "target_url", "status"),
        }),
        ("Timing", {
            "fields": ("created_at", "started_at", "finished_at"),
        }),
        ("Error Details", {
            "fields": ("error_log",),
            "classes": ("collapse",),
        }),
    )

    def has_add_permission(self, request):
        return False

    def id_short(self, obj):
        """Display shortened job ID."""
        return str(obj.id)[:8]
    id_short.short_description = "Job ID"

    def status_badge(self, obj):
        """Display status as colored badge."""
        colors = {
            "pending": "#ffc107",
            "in_progress": "#007bff",
            "completed": "#28a745",
            "failed": "#dc3545",
        }
        color = colors.get(obj.status, "#6c757d")
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 2px 8px; border-radius: 4px;">{}</span>',
            color, obj.get_status_display()
        )
    status_badge.short_description = "Status"
    status_badge.admin_order_field = "status"

    def duration_display(self, obj):
        seconds = obj.duration_seconds
        if seconds is None:
            return "-"
        return f"{seconds:.1f}s"
    duration_display.short_description = "Duration"
