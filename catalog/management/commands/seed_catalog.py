"""
Management command to seed the catalog with sample data.

Seeds navigation sections, categories, products, product details and
reviews from catalog/fixtures/seed_catalog.json through the same upsert
helpers the orchestrator uses, so running it twice changes nothing.

Usage:
    python manage.py seed_catalog            # Seed sample catalog
    python manage.py seed_catalog --dry-run  # Preview without changes
"""

import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from catalog.services.catalog_saver import (
    replace_reviews,
    upsert_category,
    upsert_navigation,
    upsert_product,
    upsert_product_detail,
)
from catalog.sources.types import ProductRecord, ReviewRecord
from catalog.utils.normalization import parse_price

DEFAULT_FIXTURE = Path(__file__).parent.parent.parent / "fixtures" / "seed_catalog.json"


class Command(BaseCommand):
    help = "Seed the catalog with sample sections, categories and products"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fixture",
            type=str,
            default=str(DEFAULT_FIXTURE),
            help="Path to the seed JSON file",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be seeded without making changes",
        )

    def handle(self, *args, **options):
        fixture = Path(options["fixture"])
        if not fixture.exists():
            raise CommandError(f"Fixture not found: {fixture}")

        try:
            data = json.loads(fixture.read_text(encoding="utf-8"))
        except ValueError as e:
            raise CommandError(f"Invalid seed fixture {fixture}: {e}")

        navigations = data.get("navigations", [])

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))
            for nav in navigations:
                self.stdout.write(f"  Navigation: {nav['title']}")
                for category in nav.get("categories", []):
                    self.stdout.write(
                        f"    Category: {category['title']} ({len(category.get('products', []))} products)"
                    )
            return

        counts = {"navigations": 0, "categories": 0, "products": 0, "reviews": 0}
        with transaction.atomic():
            for nav in navigations:
                self._seed_navigation(nav, counts)

        self.stdout.write(self.style.SUCCESS("Seed data created successfully"))
        for name, count in counts.items():
            self.stdout.write(f"  - {name.title()}: {count}")

    def _seed_navigation(self, nav, counts):
        now = timezone.now()
        section, created = upsert_navigation(nav["title"], nav.get("source_url", ""), listed_at=now)
        counts["navigations"] += 1
        self._report(created, "navigation", section.title)

        for category_data in nav.get("categories", []):
            category, created = upsert_category(
                section, category_data["title"], category_data.get("source_url", "")
            )
            counts["categories"] += 1
            self._report(created, "category", category.title)

            products = category_data.get("products", [])
            for product_data in products:
                self._seed_product(category, product_data, now, counts)

            category.product_count = len(products)
            category.last_refreshed_at = now
            category.save(update_fields=["product_count", "last_refreshed_at", "updated_at"])

        section.last_refreshed_at = now
        section.save(update_fields=["last_refreshed_at", "updated_at"])

    def _seed_product(self, category, data, now, counts):
        record = ProductRecord(
            source_id=data["source_id"],
            source_url=data["source_url"],
            title=data["title"],
            author=data.get("author"),
            price=parse_price(data.get("price")),
            currency=data.get("currency", "GBP"),
            image_url=data.get("image_url", ""),
            category_name=category.title,
        )
        product, created = upsert_product(record, category=category, refreshed_at=now)
        counts["products"] += 1
        self._report(created, "product", product.title)

        reviews = [
            ReviewRecord(author=r.get("author"), rating=int(r["rating"]), text=r.get("text", ""))
            for r in data.get("reviews", [])
        ]
        upsert_product_detail(
            product,
            description=data.get("description", ""),
            specs=data.get("specs", {}),
            rating_average=data.get("rating_average"),
            review_count=len(reviews),
            refreshed_at=now,
        )
        replace_reviews(product, reviews)
        counts["reviews"] += len(reviews)

    def _report(self, created, kind, title):
        if created:
            self.stdout.write(f"Created {kind}: {title}")
        else:
            self.stdout.write(f"{kind.title()} already exists: {title}")
