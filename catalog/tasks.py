"""
Celery tasks for catalog scraping.

- run_scrape_job: worker task dispatching one job payload to the orchestrator
- enqueue_scrape_job: helper putting a payload on the scrape queue

Payload:
    {"type": "navigation" | "category" | "product" | "product_detail",
     "id": str (required except for navigation),
     "force": bool, "page": int, "limit": int}

Result:
    {"success": bool, "count": int, "total": int}
"""

import logging
from typing import Any, Dict, Optional

from celery import shared_task

from catalog.exceptions import PageFetchFailed, SourceUnavailable
from catalog.models import ScrapeTargetType
from catalog.services.orchestrator import get_catalog_orchestrator

logger = logging.getLogger(__name__)

SCRAPE_QUEUE = "scrape"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

ID_REQUIRED_MESSAGES = {
    ScrapeTargetType.CATEGORY.value: "Navigation ID is required for category scrape",
    ScrapeTargetType.PRODUCT.value: "Category ID is required for product scrape",
    ScrapeTargetType.PRODUCT_DETAIL.value: "Product ID is required for product detail scrape",
}


def _positive_int(value, default: int, name: str) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if number < 1:
        raise ValueError(f"{name} must be >= 1, got {number}")
    return number


def validate_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize a job payload.

    Raises:
        ValueError: unknown type, missing id, or bad page/limit
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Job payload must be an object, got {type(payload).__name__}")

    job_type = payload.get("type")
    if job_type not in ScrapeTargetType.values:
        raise ValueError(f"Unknown job type: {job_type}")

    entity_id = payload.get("id")
    if job_type in ID_REQUIRED_MESSAGES and not entity_id:
        raise ValueError(ID_REQUIRED_MESSAGES[job_type])

    return {
        "type": job_type,
        "id": str(entity_id) if entity_id else None,
        "force": bool(payload.get("force", False)),
        "page": _positive_int(payload.get("page"), DEFAULT_PAGE, "page"),
        "limit": _positive_int(payload.get("limit"), DEFAULT_LIMIT, "limit"),
    }


@shared_task(
    name="catalog.tasks.run_scrape_job",
    bind=True,
    acks_late=True,
    autoretry_for=(SourceUnavailable, PageFetchFailed),
    retry_backoff=2,
    retry_jitter=False,
    max_retries=2,
)
def run_scrape_job(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process one scrape job payload.

    Source errors are retried by Celery with exponential backoff (three
    attempts in total); NotFound and payload errors fail immediately.
    """
    data = validate_payload(payload)
    logger.info(f"Processing job {self.request.id} of type: {data['type']}")

    try:
        result = get_catalog_orchestrator().run(
            data["type"],
            data["id"],
            force=data["force"],
            page=data["page"],
            limit=data["limit"],
        )
    except Exception as e:
        logger.error(f"Job {self.request.id} failed: {e}")
        raise

    return result.to_job_result()


def enqueue_scrape_job(
    job_type: str,
    entity_id=None,
    force: bool = False,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> str:
    """
    Put a scrape job on the scrape queue.

    Returns:
        Celery task id
    """
    payload: Dict[str, Any] = {"type": job_type, "force": force}
    if entity_id is not None:
        payload["id"] = str(entity_id)
    if page is not None:
        payload["page"] = page
    if limit is not None:
        payload["limit"] = limit

    validate_payload(payload)
    async_result = run_scrape_job.apply_async(args=[payload], queue=SCRAPE_QUEUE)
    logger.info(f"Queued {job_type} scrape job {async_result.id} for {entity_id}")
    return async_result.id
