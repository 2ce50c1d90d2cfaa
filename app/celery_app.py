"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

# Create Celery instance
celery_app = Celery(
    "zyboard",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.maintenance_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
)

# Daily age-based cleanup, staggered so both jobs do not hit the database at once
celery_app.conf.beat_schedule = {
    "cleanup-old-notifications": {
        "task": "app.tasks.maintenance_tasks.cleanup_old_notifications_task",
        "schedule": crontab(hour=3, minute=0),
        "options": {"expires": 3600},
    },
    "cleanup-old-activities": {
        "task": "app.tasks.maintenance_tasks.cleanup_old_activities_task",
        "schedule": crontab(hour=3, minute=30),
        "options": {"expires": 3600},
    },
}

celery_app.conf.task_routes = {
    "app.tasks.maintenance_tasks.*": {"queue": "maintenance"},
}
