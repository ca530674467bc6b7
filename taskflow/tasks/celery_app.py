"""Celery application and beat schedule."""
from celery import Celery
from celery.schedules import crontab

from taskflow.config import settings

celery_app = Celery(
    "taskflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["taskflow.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "scan-due-soon-tasks": {
        "task": "taskflow.tasks.notifications.scan_due_soon_tasks",
        "schedule": crontab(minute="*/15"),
    },
    "purge-old-notifications": {
        "task": "taskflow.tasks.notifications.purge_old_notifications",
        "schedule": crontab(hour=3, minute=0),
    },
}
