"""
Job lifecycle tracker.

One ScrapeJob row per orchestration call; transitions are delegated to
the model so that illegal moves raise InvalidJobTransition.
"""

import logging

from catalog.models import ScrapeJob, ScrapeJobStatus
from catalog.monitoring import add_scrape_breadcrumb

logger = logging.getLogger(__name__)


def create_job(target_url: str, target_type: str) -> ScrapeJob:
    """Create a pending job."""
    job = ScrapeJob.objects.create(
        target_url=target_url or "",
        target_type=target_type,
        status=ScrapeJobStatus.PENDING,
    )
    logger.debug(f"Created scrape job {job.id} ({target_type}) for {target_url}")
    return job


def start_job(job: ScrapeJob) -> ScrapeJob:
    job.start()
    add_scrape_breadcrumb(job.target_type, job.target_url, f"Scrape job {job.id} started")
    logger.info(f"Scrape job {job.id} started: {job.target_type} {job.target_url}")
    return job


def begin_job(target_url: str, target_type: str) -> ScrapeJob:
    """Create a job and move it straight to in_progress."""
    return start_job(create_job(target_url, target_type))


def complete_job(job: ScrapeJob) -> ScrapeJob:
    job.complete()
    logger.info(f"Scrape job {job.id} completed in {job.duration_seconds:.2f}s")
    return job


def fail_job(job: ScrapeJob, error) -> ScrapeJob:
    """Mark a job failed, recording the error text."""
    job.fail(str(error))
    add_scrape_breadcrumb(
        job.target_type,
        job.target_url,
        f"Scrape job {job.id} failed",
        level="error",
        extra_data={"error": str(error)},
    )
    logger.error(f"Scrape job {job.id} failed: {error}")
    return job
