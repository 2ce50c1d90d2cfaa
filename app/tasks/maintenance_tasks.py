"""Celery tasks for periodic data cleanup."""

import asyncio
import logging
from typing import Any

from app.celery_app import celery_app
from app.core.config import settings
from app.persistence.factory import create_persistence

logger = logging.getLogger(__name__)


async def _cleanup_notifications_async(days: int) -> int:
    persistence = create_persistence(settings)
    try:
        return await persistence.cleanup_old_notifications(days)
    finally:
        await persistence.close()


async def _cleanup_activities_async(days: int) -> int:
    persistence = create_persistence(settings)
    try:
        return await persistence.cleanup_old_activities(days)
    finally:
        await persistence.close()


@celery_app.task(name="app.tasks.maintenance_tasks.cleanup_old_notifications_task", bind=True)
def cleanup_old_notifications_task(self, days: int | None = None) -> dict[str, Any]:
    """Delete read notifications older than the retention window.

    Returns:
        Dictionary with the number of deleted notifications
    """
    days = days or settings.notification_retention_days
    logger.info("Cleaning up read notifications older than %d days (task %s)", days, self.request.id)

    try:
        deleted = asyncio.run(_cleanup_notifications_async(days))
    except Exception as e:
        logger.error("Notification cleanup failed: %s", e)
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3)

    logger.info("Deleted %d old notifications", deleted)
    return {"deleted_count": deleted}


@celery_app.task(name="app.tasks.maintenance_tasks.cleanup_old_activities_task", bind=True)
def cleanup_old_activities_task(self, days: int | None = None) -> dict[str, Any]:
    """Delete activity entries older than the retention window.

    Returns:
        Dictionary with the number of deleted activities
    """
    days = days or settings.activity_retention_days
    logger.info("Cleaning up activities older than %d days (task %s)", days, self.request.id)

    try:
        deleted = asyncio.run(_cleanup_activities_async(days))
    except Exception as e:
        logger.error("Activity cleanup failed: %s", e)
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3)

    logger.info("Deleted %d old activities", deleted)
    return {"deleted_count": deleted}
