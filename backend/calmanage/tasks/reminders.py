"""Celery task driving the lifecycle scheduler."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

import redis
from redis.exceptions import RedisError

from calmanage.celery_app import celery_app
from calmanage.core.config import settings
from calmanage.db import open_session
from calmanage.services.notifications import NotificationDispatcher
from calmanage.services.scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

TICK_LOCK_NAME = "calmanage:scheduler:tick"

_local_tick_lock = threading.Lock()
_scheduler: ReminderScheduler | None = None
_redis_client: redis.Redis | None = None


def get_scheduler() -> ReminderScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = ReminderScheduler(
            session_factory=open_session,
            dispatcher=NotificationDispatcher(),
        )
    return _scheduler


def get_redis_client() -> redis.Redis:
    """Process-wide client; its connection pool is reused across ticks."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.REDIS_URL)
    return _redis_client


@contextmanager
def tick_lock() -> Iterator[bool]:
    """
    Hold the cross-process tick lock, yielding whether it was acquired.

    Falls back to a process-local lock when Redis is unreachable.
    """
    lock = None
    try:
        lock = get_redis_client().lock(
            TICK_LOCK_NAME,
            timeout=settings.SCHEDULER_LOCK_TIMEOUT_SECONDS,
        )
        acquired = lock.acquire(blocking=False)
    except RedisError as e:
        logger.warning(f"Redis lock unavailable ({e}), using process-local tick lock")
        lock = None
        acquired = _local_tick_lock.acquire(blocking=False)

    try:
        yield acquired
    finally:
        if acquired and lock is None:
            _local_tick_lock.release()
        elif acquired:
            try:
                lock.release()
            except RedisError as e:
                logger.warning(f"Failed to release scheduler tick lock: {e}")


@celery_app.task(name="calmanage.tasks.reminders.run_scheduler_tick")
def run_scheduler_tick() -> dict[str, int]:
    """
    Periodic task that fires due reminders and start/end notifications.

    Runs every SCHEDULER_INTERVAL_SECONDS through Celery Beat. A tick that
    finds the previous one still running is skipped.

    Returns:
        dict: Counters for the tick, empty if skipped
    """
    with tick_lock() as acquired:
        if not acquired:
            logger.info("[Scheduler] Tick skipped, previous tick still holds the lock")
            return {}
        scheduler = get_scheduler()
        scheduler.tick()
        return scheduler.last_summary.as_dict() if scheduler.last_summary else {}
