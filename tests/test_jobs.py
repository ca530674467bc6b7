"""Tests for the scheduled reminder and retention jobs."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from taskflow.models.notification import Notification, NotificationType
from taskflow.models.task import TaskStatus
from taskflow.services import notification_service
from taskflow.schemas.task import TaskCreate, TaskUpdate
from taskflow.tasks.notifications import purge_notifications, send_due_soon_reminders
from taskflow.utils.timeutils import utcnow
from tests.fakes import FailFirstNotification


async def _due_soon(db, user_id):
    result = await db.execute(
        select(Notification).where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.TASK_DUE_SOON,
        )
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_due_soon_reminder_is_sent_once_per_due_date(db_session, services, alice, bob):
    soon = utcnow() + timedelta(hours=2)
    task = await services.tasks.create_task(
        db_session, TaskCreate(title="Ship it", assigned_to=bob.id, due_date=soon), alice.id
    )

    assert await send_due_soon_reminders(db_session, services.notifications) == 1
    assert await send_due_soon_reminders(db_session, services.notifications) == 0

    reminders = await _due_soon(db_session, bob.id)
    assert len(reminders) == 1
    assert reminders[0].title == "Task Due Soon"
    assert reminders[0].message == f'"Ship it" is due on {soon.date().isoformat()}'
    assert reminders[0].related_task_id == task.id
    assert await _due_soon(db_session, alice.id) == []

    later = utcnow() + timedelta(hours=5)
    await services.tasks.update_task(db_session, task.id, TaskUpdate(due_date=later), alice.id)

    assert await send_due_soon_reminders(db_session, services.notifications) == 1
    assert len(await _due_soon(db_session, bob.id)) == 2


@pytest.mark.asyncio
async def test_reminders_skip_closed_distant_and_overdue_tasks(db_session, services, alice):
    now = utcnow()
    await services.tasks.create_task(
        db_session, TaskCreate(title="Far away", due_date=now + timedelta(days=3)), alice.id
    )
    await services.tasks.create_task(
        db_session, TaskCreate(title="Overdue", due_date=now - timedelta(hours=1)), alice.id
    )
    await services.tasks.create_task(db_session, TaskCreate(title="No date"), alice.id)
    done = await services.tasks.create_task(
        db_session, TaskCreate(title="Done", due_date=now + timedelta(hours=1)), alice.id
    )
    await services.tasks.update_task(db_session, done.id, TaskUpdate(status=TaskStatus.COMPLETED), alice.id)

    assert await send_due_soon_reminders(db_session, services.notifications, now=now) == 0


@pytest.mark.asyncio
async def test_purge_removes_only_expired_notifications(db_session, alice):
    now = utcnow()
    old = Notification(
        user_id=alice.id,
        type=NotificationType.NEW_COMMENT,
        title="Old",
        message="old",
        created_at=now - timedelta(days=45),
    )
    fresh = Notification(
        user_id=alice.id,
        type=NotificationType.NEW_COMMENT,
        title="Fresh",
        message="fresh",
        created_at=now - timedelta(days=2),
    )
    db_session.add_all([old, fresh])
    await db_session.commit()

    assert await purge_notifications(db_session, now=now) == 1

    result = await db_session.execute(select(Notification.title).where(Notification.user_id == alice.id))
    assert list(result.scalars().all()) == ["Fresh"]


@pytest.mark.asyncio
async def test_one_failed_reminder_does_not_stop_the_batch(db_session, services, alice, bob, carol, monkeypatch):
    alice_id, bob_id, carol_id = alice.id, bob.id, carol.id
    soon = utcnow() + timedelta(hours=3)
    await services.tasks.create_task(
        db_session, TaskCreate(title="First", assigned_to=bob_id, due_date=soon), alice_id
    )
    await services.tasks.create_task(
        db_session, TaskCreate(title="Second", assigned_to=carol_id, due_date=soon), alice_id
    )
    failing = FailFirstNotification(Notification)
    monkeypatch.setattr(notification_service, "Notification", failing)

    assert await send_due_soon_reminders(db_session, services.notifications) == 1

    assert len(failing.attempted) == 2
    delivered = {uid: len(await _due_soon(db_session, uid)) for uid in (bob_id, carol_id)}
    assert sorted(delivered.values()) == [0, 1]
    assert delivered[failing.attempted[1]] == 1

    # The failed task was not stamped, so the next scan retries it.
    assert await send_due_soon_reminders(db_session, services.notifications) == 1
    assert len(await _due_soon(db_session, failing.attempted[0])) == 1
