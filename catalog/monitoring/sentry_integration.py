"""
Sentry error tracking for scrape jobs.

Sentry itself is initialised in settings/base.py when SENTRY_DSN is set;
without a DSN the SDK client is a no-op and these helpers cost nothing.

Usage:
    from catalog.monitoring import capture_scrape_error

    try:
        extraction = extractor.extract(url)
    except PageFetchFailed as e:
        capture_scrape_error(e, job=job)
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "api_key",
    "apikey",
    "api-key",
    "x-algolia-api-key",
    "authorization",
    "password",
    "secret",
    "token",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Replace values for keys that look like credentials (recursively)."""
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value
    return filtered


def add_scrape_breadcrumb(
    target_type: str,
    target_url: str,
    message: str,
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a breadcrumb describing a scrape step."""
    data = {"target_type": target_type, "target_url": target_url}
    if extra_data:
        data.update(_filter_sensitive_data(extra_data))

    sentry_sdk.add_breadcrumb(category="scrape", message=message, level=level, data=data)


def capture_scrape_error(
    error: Exception,
    job=None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture a scrape failure to Sentry with job context.

    Args:
        error: The exception that occurred
        job: ScrapeJob instance (optional)
        extra_context: Additional context (filtered for sensitive data)
    """
    with sentry_sdk.new_scope() as scope:
        if job is not None:
            scope.set_tag("scrape.target_type", job.target_type)
            scope.set_extra("scrape_job_id", str(job.id))
            scope.set_extra("target_url", job.target_url)
        if extra_context:
            scope.set_extra("scrape_context", _filter_sensitive_data(extra_context))

        event_id = sentry_sdk.capture_exception(error)

    if event_id:
        logger.debug(f"Reported {type(error).__name__} to Sentry as event {event_id}")
