"""
Management command to run one catalog refresh synchronously.

Usage:
    python manage.py refresh_catalog navigation
    python manage.py refresh_catalog category --id=<navigation_id>
    python manage.py refresh_catalog product --id=<category_id> --page=2 --limit=40 --force
    python manage.py refresh_catalog product_detail --id=<product_id>
"""

from django.core.management.base import BaseCommand, CommandError

from catalog.exceptions import CatalogError
from catalog.models import ScrapeTargetType
from catalog.services.orchestrator import get_catalog_orchestrator
from catalog.tasks import validate_payload


class Command(BaseCommand):
    help = "Run one catalog refresh in the foreground (bypasses the job queue)"

    def add_arguments(self, parser):
        parser.add_argument(
            "type",
            choices=ScrapeTargetType.values,
            help="Scrape target type",
        )
        parser.add_argument("--id", dest="entity_id", help="Parent or product id")
        parser.add_argument("--page", type=int, default=None, help="Page number (products)")
        parser.add_argument("--limit", type=int, default=None, help="Page size (products)")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Ignore cached data and fetch from the source",
        )

    def handle(self, *args, **options):
        try:
            data = validate_payload({
                "type": options["type"],
                "id": options["entity_id"],
                "force": options["force"],
                "page": options["page"],
                "limit": options["limit"],
            })
        except ValueError as e:
            raise CommandError(str(e))

        try:
            result = get_catalog_orchestrator().run(
                data["type"],
                data["id"],
                force=data["force"],
                page=data["page"],
                limit=data["limit"],
            )
        except CatalogError as e:
            raise CommandError(str(e))

        source = "cache" if result.from_cache else "source"
        style = self.style.SUCCESS if result.success else self.style.WARNING
        self.stdout.write(style(
            f"{data['type']}: {result.count} items from {source} "
            f"(total: {result.total}, skipped: {result.skipped})"
        ))
        if result.job_id:
            self.stdout.write(f"  Job: {result.job_id}")
        if result.error:
            self.stdout.write(self.style.WARNING(f"  Error: {result.error}"))
