"""
Monitoring helpers for catalog scrape jobs.

- Sentry error capture with scrape-job context
- Breadcrumbs for job transitions
"""

from .sentry_integration import add_scrape_breadcrumb, capture_scrape_error

__all__ = [
    "add_scrape_breadcrumb",
    "capture_scrape_error",
]
