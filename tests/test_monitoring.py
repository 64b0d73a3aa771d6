"""
Tests for Sentry scrape monitoring helpers.
"""

from unittest.mock import patch

import pytest

from catalog.models import ScrapeJob, ScrapeTargetType
from catalog.monitoring.sentry_integration import (
    _filter_sensitive_data,
    add_scrape_breadcrumb,
    capture_scrape_error,
)


@pytest.fixture
def mock_sentry():
    with patch("catalog.monitoring.sentry_integration.sentry_sdk") as sentry:
        yield sentry


@pytest.fixture
def scrape_job(db):
    return ScrapeJob.objects.create(
        target_url="https://books.example.com/en-gb/products/book-1",
        target_type=ScrapeTargetType.PRODUCT_DETAIL,
    )


class TestSentryErrorCapture:
    """Test Sentry error capture with job context."""

    def test_capture_sets_job_context(self, mock_sentry, scrape_job):
        error = ValueError("Test fetch error")

        capture_scrape_error(error, job=scrape_job, extra_context={"attempt": 2})

        scope = mock_sentry.new_scope.return_value.__enter__.return_value
        scope.set_tag.assert_called_once_with("scrape.target_type", "product_detail")
        scope.set_extra.assert_any_call("scrape_job_id", str(scrape_job.id))
        scope.set_extra.assert_any_call("target_url", scrape_job.target_url)
        scope.set_extra.assert_any_call("scrape_context", {"attempt": 2})
        mock_sentry.capture_exception.assert_called_once_with(error)

    def test_capture_without_job(self, mock_sentry):
        error = RuntimeError("boom")

        capture_scrape_error(error)

        scope = mock_sentry.new_scope.return_value.__enter__.return_value
        scope.set_tag.assert_not_called()
        mock_sentry.capture_exception.assert_called_once_with(error)

    def test_capture_logs_event_id(self, mock_sentry, caplog):
        mock_sentry.capture_exception.return_value = "abc123"

        with caplog.at_level("DEBUG", logger="catalog.monitoring.sentry_integration"):
            capture_scrape_error(ValueError("logged"))

        assert "Reported ValueError to Sentry as event abc123" in caplog.text

    def test_capture_is_noop_without_dsn(self, scrape_job):
        """Without sentry_sdk.init the real SDK accepts the call silently."""
        capture_scrape_error(ValueError("no dsn"), job=scrape_job)


class TestBreadcrumbs:

    def test_breadcrumb_carries_target(self, mock_sentry):
        add_scrape_breadcrumb("product", "https://x.test/c/fiction", "Scrape job started")

        mock_sentry.add_breadcrumb.assert_called_once_with(
            category="scrape",
            message="Scrape job started",
            level="info",
            data={"target_type": "product", "target_url": "https://x.test/c/fiction"},
        )

    def test_breadcrumb_filters_credentials(self, mock_sentry):
        add_scrape_breadcrumb(
            "navigation",
            "https://x.test",
            "failed",
            level="error",
            extra_data={"X-Algolia-API-Key": "secret-key", "status": 503},
        )

        data = mock_sentry.add_breadcrumb.call_args.kwargs["data"]
        assert data["X-Algolia-API-Key"] == "[Filtered]"
        assert data["status"] == 503


def test_filter_sensitive_data_recurses():
    filtered = _filter_sensitive_data({
        "headers": {"Authorization": "Bearer abc", "Accept": "application/json"},
        "search_api_key": "k",
        "query": "fiction",
    })

    assert filtered == {
        "headers": {"Authorization": "[Filtered]", "Accept": "application/json"},
        "search_api_key": "[Filtered]",
        "query": "fiction",
    }
