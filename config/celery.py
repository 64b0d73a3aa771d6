"""
Celery configuration for the Catalog Scraper service.

This module configures Celery as the job queue that delivers scrape
jobs to the catalog orchestrator.
"""

import os
from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("catalog_scraper")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Configure task queues
app.conf.task_queues = {
    "scrape": {
        "exchange": "scrape",
        "routing_key": "scrape",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}

# Default task routing
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"

# Route scrape tasks to their queue
app.conf.task_routes = {
    "catalog.tasks.run_scrape_job": {"queue": "scrape"},
}
