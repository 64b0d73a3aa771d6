"""
Staleness checks for cached catalog rows.

Listings (navigation sections, categories, product pages) use the
CACHE_TTL_SECONDS window; rich product detail uses the longer
DETAIL_CACHE_TTL_SECONDS window because rendered-page fetches are far
more expensive.
"""

from datetime import datetime, timedelta
from typing import Optional

from django.utils import timezone

DEFAULT_LISTING_TTL_SECONDS = 60 * 60
DEFAULT_DETAIL_TTL_SECONDS = 24 * 60 * 60


def is_stale(
    last_refreshed_at: Optional[datetime],
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether a cached row is due for a refresh.

    Args:
        last_refreshed_at: When the row was last refreshed (None = never)
        ttl_seconds: Maximum acceptable age in seconds
        now: Reference time (defaults to timezone.now())

    Returns:
        True if the row was never refreshed or is older than the TTL.

    Example:
        >>> is_stale(None, 3600)
        True
    """
    if last_refreshed_at is None:
        return True

    current = now or timezone.now()
    return current - last_refreshed_at > timedelta(seconds=ttl_seconds)


def seconds_until_stale(
    last_refreshed_at: Optional[datetime],
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> float:
    """Remaining freshness in seconds (0 when already stale)."""
    if last_refreshed_at is None:
        return 0.0

    current = now or timezone.now()
    remaining = ttl_seconds - (current - last_refreshed_at).total_seconds()
    return max(0.0, remaining)
