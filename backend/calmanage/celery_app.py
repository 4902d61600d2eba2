"""Celery application configuration."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import Celery

from calmanage.core.config import settings

logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "calmanage",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["calmanage.tasks.notifications", "calmanage.tasks.reminders"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    # A lost tick is picked up by the next one; do not redeliver.
    task_acks_late=False,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=500,
)

# Periodic tasks
celery_app.conf.beat_schedule = {
    "run-lifecycle-scheduler-tick": {
        "task": "calmanage.tasks.reminders.run_scheduler_tick",
        "schedule": timedelta(seconds=settings.SCHEDULER_INTERVAL_SECONDS),
        # Drop queued ticks that a busy worker could not start in time.
        "options": {"expires": max(settings.SCHEDULER_INTERVAL_SECONDS - 5, 1)},
    },
}


logger.info(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
