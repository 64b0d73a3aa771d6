"""
Catalog service views.

Includes health check endpoint for monitoring and load balancer checks.
"""

from datetime import timedelta

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone

from catalog.models import ScrapeJob, ScrapeJobStatus


def get_redis_connection():
    """
    Get a Redis client for the Celery broker.

    Returns:
        Redis client, or None when the broker is not Redis.
    """
    broker_url = getattr(settings, "CELERY_BROKER_URL", "") or ""
    if not broker_url.startswith(("redis://", "rediss://")):
        return None
    return redis.Redis.from_url(broker_url, socket_connect_timeout=2, socket_timeout=2)


def get_celery_worker_count():
    """
    Get the count of active Celery workers.

    Returns:
        int: Number of active workers, 0 if none answer.
    """
    from config.celery import app as celery_app

    active = celery_app.control.inspect(timeout=1.0).active()
    if active:
        return len(active)
    return 0


def get_job_stats(since):
    """Scrape job counts and success rate for jobs finished after `since`."""
    finished = ScrapeJob.objects.filter(finished_at__gte=since)
    completed = finished.filter(status=ScrapeJobStatus.COMPLETED).count()
    failed = finished.filter(status=ScrapeJobStatus.FAILED).count()
    total = completed + failed

    return {
        "completed": completed,
        "failed": failed,
        "success_rate": round(completed / total * 100, 1) if total else None,
    }


def health_check(request):
    """
    Health check endpoint for the catalog service.

    Endpoint: GET /api/health/
    No authentication required (for load balancer checks).

    Response fields:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "error"
        - redis: "connected", "not_configured", or "error"
        - celery_workers: integer count of active workers
        - pending_jobs / in_progress_jobs: scrape job backlog
        - last_scrape: ISO timestamp of the most recent finished job
        - scrape_jobs_24h: completed/failed counts and success rate

    Returns:
        JsonResponse: HTTP 200 for healthy, HTTP 503 for unhealthy
    """
    status = "healthy"
    http_status = 200

    # Check database connection
    database_status = "connected"
    try:
        connection.ensure_connection()
    except Exception:
        database_status = "error"
        status = "unhealthy"
        http_status = 503

    # Check Redis connection (graceful degradation)
    redis_status = "not_configured"
    try:
        redis_client = get_redis_connection()
        if redis_client is not None:
            redis_status = "connected" if redis_client.ping() else "error"
    except redis.RedisError:
        redis_status = "error"

    # Check Celery workers (graceful degradation)
    try:
        celery_workers = get_celery_worker_count()
    except Exception:
        celery_workers = 0

    pending_jobs = 0
    in_progress_jobs = 0
    last_scrape = None
    job_stats = None
    if database_status == "connected":
        pending_jobs = ScrapeJob.objects.filter(status=ScrapeJobStatus.PENDING).count()
        in_progress_jobs = ScrapeJob.objects.filter(status=ScrapeJobStatus.IN_PROGRESS).count()

        latest = ScrapeJob.objects.filter(finished_at__isnull=False).order_by("-finished_at").first()
        if latest:
            last_scrape = latest.finished_at.isoformat()

        job_stats = get_job_stats(timezone.now() - timedelta(hours=24))

    return JsonResponse(
        {
            "status": status,
            "database": database_status,
            "redis": redis_status,
            "celery_workers": celery_workers,
            "pending_jobs": pending_jobs,
            "in_progress_jobs": in_progress_jobs,
            "last_scrape": last_scrape,
            "scrape_jobs_24h": job_stats,
        },
        status=http_status,
    )
