"""Celery jobs: due-date reminders and notification retention."""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from taskflow.config import settings
from taskflow.crud.notification import notification as notification_crud
from taskflow.crud.task import task as task_crud
from taskflow.services.notification_service import NotificationService
from taskflow.tasks.celery_app import celery_app
from taskflow.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


async def send_due_soon_reminders(
    db: AsyncSession,
    notifications: NotificationService,
    now: Optional[datetime] = None,
) -> int:
    """Remind assignees of open tasks due within the window, once per due date."""
    now = now or utcnow()
    until = now + timedelta(hours=settings.DUE_SOON_WINDOW_HOURS)
    due = await task_crud.list_due_soon(db, now=now, until=until)

    # A failed delivery rolls the session back and expires loaded rows.
    rows = [(task.id, task.title, task.assigned_to, task.due_date) for task in due]

    sent = 0
    for task_id, title, assignee_id, due_date in rows:
        created = await notifications.notify_due_soon(
            db, task_id=task_id, task_title=title, assignee_id=assignee_id, due_date=due_date
        )
        if created is None:
            continue
        await task_crud.mark_reminded(db, task_id=task_id, when=now)
        sent += 1
    logger.info("Sent %s due soon reminder(s)", sent)
    return sent


async def purge_notifications(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Delete notifications past the retention period."""
    cutoff = (now or utcnow()) - timedelta(days=settings.NOTIFICATION_RETENTION_DAYS)
    deleted = await notification_crud.delete_older_than(db, cutoff=cutoff)
    logger.info("Purged %s notification(s) older than %s", deleted, cutoff.isoformat())
    return deleted


async def _with_session(job):
    # Each asyncio.run() gets its own loop, so connections must not be pooled across runs.
    engine = create_async_engine(settings.DATABASE_URL, echo=False, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as db:
            return await job(db)
    finally:
        await engine.dispose()


@celery_app.task
@retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    reraise=True,
)
def scan_due_soon_tasks() -> int:
    """Called by Celery Beat."""
    # Worker processes hold no WebSocket connections; clients pick reminders up on next poll.
    notifications = NotificationService()
    return asyncio.run(_with_session(lambda db: send_due_soon_reminders(db, notifications)))


@celery_app.task
@retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    reraise=True,
)
def purge_old_notifications() -> int:
    return asyncio.run(_with_session(purge_notifications))
