"""
Tests for the scrape job Celery tasks.
"""

import uuid
from unittest.mock import MagicMock, patch

import pytest

from catalog.exceptions import NotFound, SourceUnavailable
from catalog.services.types import RefreshResult
from catalog.tasks import (
    SCRAPE_QUEUE,
    enqueue_scrape_job,
    run_scrape_job,
    validate_payload,
)


class TestValidatePayload:
    """Tests for validate_payload()."""

    def test_navigation_needs_no_id(self):
        assert validate_payload({"type": "navigation"}) == {
            "type": "navigation",
            "id": None,
            "force": False,
            "page": 1,
            "limit": 20,
        }

    def test_defaults_and_coercion(self):
        entity_id = uuid.uuid4()

        data = validate_payload({"type": "product", "id": entity_id, "page": "3", "limit": 40, "force": 1})

        assert data == {"type": "product", "id": str(entity_id), "force": True, "page": 3, "limit": 40}

    @pytest.mark.parametrize(
        "job_type, message",
        [
            ("category", "Navigation ID is required for category scrape"),
            ("product", "Category ID is required for product scrape"),
            ("product_detail", "Product ID is required for product detail scrape"),
        ],
    )
    def test_id_required(self, job_type, message):
        with pytest.raises(ValueError, match=message):
            validate_payload({"type": job_type})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown job type: reviews"):
            validate_payload({"type": "reviews", "id": "x"})

    @pytest.mark.parametrize("page", [0, -1, "two"])
    def test_bad_page(self, page):
        with pytest.raises(ValueError):
            validate_payload({"type": "product", "id": "x", "page": page})

    def test_payload_must_be_object(self):
        with pytest.raises(ValueError):
            validate_payload(["navigation"])


class TestRunScrapeJob:
    """Tests for the run_scrape_job task body."""

    @patch("catalog.tasks.get_catalog_orchestrator")
    def test_returns_job_result(self, mock_get_orchestrator):
        orchestrator = MagicMock()
        orchestrator.run.return_value = RefreshResult(items=[object(), object()], total=57)
        mock_get_orchestrator.return_value = orchestrator

        result = run_scrape_job({"type": "product", "id": "cat-1", "page": 2, "limit": 2})

        assert result == {"success": True, "count": 2, "total": 57}
        orchestrator.run.assert_called_once_with("product", "cat-1", force=False, page=2, limit=2)

    @patch("catalog.tasks.get_catalog_orchestrator")
    def test_degraded_detail_reports_failure(self, mock_get_orchestrator):
        orchestrator = MagicMock()
        orchestrator.run.return_value = RefreshResult(items=[object()], total=1, success=False, error="HTTP 404")
        mock_get_orchestrator.return_value = orchestrator

        result = run_scrape_job({"type": "product_detail", "id": "p-1"})

        assert result == {"success": False, "count": 1, "total": 1}

    @patch("catalog.tasks.get_catalog_orchestrator")
    def test_orchestrator_errors_propagate(self, mock_get_orchestrator):
        mock_get_orchestrator.return_value.run.side_effect = NotFound("Category", "missing")

        with pytest.raises(NotFound):
            run_scrape_job({"type": "product", "id": "missing"})

    @patch("catalog.tasks.get_catalog_orchestrator")
    def test_source_errors_surface_when_called_directly(self, mock_get_orchestrator):
        mock_get_orchestrator.return_value.run.side_effect = SourceUnavailable("HTTP 503", status_code=503)

        with pytest.raises(SourceUnavailable):
            run_scrape_job({"type": "navigation"})

    @patch("catalog.tasks.get_catalog_orchestrator")
    def test_invalid_payload_never_reaches_orchestrator(self, mock_get_orchestrator):
        with pytest.raises(ValueError):
            run_scrape_job({"type": "category"})

        mock_get_orchestrator.assert_not_called()

    def test_retry_policy(self):
        assert SourceUnavailable in run_scrape_job.autoretry_for
        assert NotFound not in run_scrape_job.autoretry_for
        assert run_scrape_job.max_retries == 2
        assert run_scrape_job.acks_late is True


class TestEnqueueScrapeJob:
    """Tests for enqueue_scrape_job()."""

    @patch("catalog.tasks.run_scrape_job.apply_async")
    def test_queues_on_scrape_queue(self, mock_apply_async):
        mock_apply_async.return_value = MagicMock(id="task-123")
        category_id = uuid.uuid4()

        job_id = enqueue_scrape_job("product", category_id, page=2, limit=40)

        assert job_id == "task-123"
        mock_apply_async.assert_called_once_with(
            args=[{"type": "product", "force": False, "id": str(category_id), "page": 2, "limit": 40}],
            queue=SCRAPE_QUEUE,
        )

    @patch("catalog.tasks.run_scrape_job.apply_async")
    def test_rejects_invalid_payload_before_queueing(self, mock_apply_async):
        with pytest.raises(ValueError):
            enqueue_scrape_job("product_detail")

        mock_apply_async.assert_not_called()
