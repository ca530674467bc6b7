"""Tests for notification triggers and the inbox."""
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from taskflow.core.exceptions import ForbiddenError, NotFoundError
from taskflow.models.notification import Notification, NotificationType
from taskflow.models.task import Task
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.services.notification_service import NotificationService, preview
from tests.fakes import FakeConnection


async def _task(db, creator, assignee, title="Ship release"):
    task = Task(title=title, created_by=creator.id, assigned_to=assignee.id)
    db.add(task)
    await db.commit()
    return task


async def _notifications(db, user=None):
    query = select(Notification).order_by(Notification.created_at)
    if user is not None:
        query = query.where(Notification.user_id == user.id)
    result = await db.execute(query)
    return list(result.scalars().all())


def test_preview_truncates_long_content():
    assert preview("short") == "short"
    assert preview("x" * 60) == "x" * 50 + "..."


@pytest.mark.asyncio
async def test_assignment_notifies_assignee(db_session, alice, bob):
    task = await _task(db_session, alice, bob)

    created = await NotificationService().notify_task_assigned(
        db_session, task_id=task.id, task_title=task.title, assignee_id=bob.id, assigner_id=alice.id
    )

    assert created.user_id == bob.id
    assert created.type == NotificationType.TASK_ASSIGNED
    assert created.title == "New Task Assignment"
    assert created.message == 'Alice Smith assigned you to "Ship release"'
    assert created.action_url == f"/tasks/{task.id}"


@pytest.mark.asyncio
async def test_self_assignment_is_suppressed(db_session, alice):
    task = await _task(db_session, alice, alice)

    created = await NotificationService().notify_task_assigned(
        db_session, task_id=task.id, task_title=task.title, assignee_id=alice.id, assigner_id=alice.id
    )

    assert created is None
    assert await _notifications(db_session) == []


@pytest.mark.asyncio
async def test_status_change_skips_actor(db_session, alice, bob):
    task = await _task(db_session, alice, bob)

    created = await NotificationService().notify_status_changed(
        db_session,
        task_id=task.id,
        task_title=task.title,
        new_status="in_progress",
        actor_id=bob.id,
        creator_id=alice.id,
        assignee_id=bob.id,
    )

    assert [n.user_id for n in created] == [alice.id]
    assert created[0].message == 'Bob Jones changed "Ship release" status to in_progress'


@pytest.mark.asyncio
async def test_status_change_deduplicates_creator_assignee(db_session, alice, bob):
    task = await _task(db_session, alice, alice)

    created = await NotificationService().notify_status_changed(
        db_session,
        task_id=task.id,
        task_title=task.title,
        new_status="completed",
        actor_id=bob.id,
        creator_id=alice.id,
        assignee_id=alice.id,
    )

    assert len(created) == 1
    assert len(await _notifications(db_session, alice)) == 1


@pytest.mark.asyncio
async def test_one_failing_recipient_does_not_block_the_other(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    task_id, alice_id, bob_id = task.id, alice.id, bob.id
    ghost = uuid4()  # violates the users foreign key

    created = await NotificationService().notify_status_changed(
        db_session,
        task_id=task_id,
        task_title="Ship release",
        new_status="todo",
        actor_id=bob_id,
        creator_id=ghost,
        assignee_id=alice_id,
    )

    # The failed insert rolled the session back, so only plain values are used from here on.
    assert [n.user_id for n in created] == [alice_id]
    assert len(await _notifications(db_session)) == 1


@pytest.mark.asyncio
async def test_new_comment_preview_and_recipients(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    content = "This is a rather long comment that keeps going past the preview"

    created = await NotificationService().notify_new_comment(
        db_session,
        task_id=task.id,
        task_title=task.title,
        comment_id=None,
        content=content,
        commenter_id=alice.id,
        creator_id=alice.id,
        assignee_id=bob.id,
    )

    assert [n.user_id for n in created] == [bob.id]
    assert created[0].title == "New Comment"
    assert created[0].message == f'Alice Smith commented on "Ship release": {content[:50]}...'
    assert created[0].action_url == f"/tasks/{task.id}#comments"


@pytest.mark.asyncio
async def test_completion_notifies_creator_unless_creator_completed(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    dispatcher = NotificationService()

    by_creator = await dispatcher.notify_task_completed(
        db_session, task_id=task.id, task_title=task.title, completer_id=alice.id, creator_id=alice.id
    )
    by_assignee = await dispatcher.notify_task_completed(
        db_session, task_id=task.id, task_title=task.title, completer_id=bob.id, creator_id=alice.id
    )

    assert by_creator is None
    assert by_assignee.user_id == alice.id
    assert by_assignee.message == 'Bob Jones completed "Ship release"'


@pytest.mark.asyncio
async def test_mention_skips_self(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    dispatcher = NotificationService()

    own = await dispatcher.notify_mentioned(
        db_session, task_id=task.id, task_title=task.title, comment_id=None,
        content="note to @alice@example.com", mentioned_id=alice.id, commenter_id=alice.id,
    )
    other = await dispatcher.notify_mentioned(
        db_session, task_id=task.id, task_title=task.title, comment_id=None,
        content="ping @bob@example.com", mentioned_id=bob.id, commenter_id=alice.id,
    )

    assert own is None
    assert other.type == NotificationType.MENTIONED
    assert other.message == 'Alice Smith mentioned you in "Ship release": ping @bob@example.com'


@pytest.mark.asyncio
async def test_due_soon_has_no_suppression(db_session, alice):
    task = await _task(db_session, alice, alice)

    created = await NotificationService().notify_due_soon(
        db_session,
        task_id=task.id,
        task_title=task.title,
        assignee_id=alice.id,
        due_date=datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc),
    )

    assert created.title == "Task Due Soon"
    assert created.message == '"Ship release" is due on 2026-03-04'


@pytest.mark.asyncio
async def test_created_notification_is_pushed_to_online_recipient(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    connections = ConnectionManager()
    socket = FakeConnection()
    connections.connect(bob.id, socket)

    await NotificationService(connections).notify_task_assigned(
        db_session, task_id=task.id, task_title=task.title, assignee_id=bob.id, assigner_id=alice.id
    )
    await connections.drain()

    assert socket.events() == ["notification:new"]
    payload = socket.sent[0]["data"]
    assert payload["type"] == "task_assigned"
    assert payload["taskTitle"] == "Ship release"
    assert payload["read"] is False


@pytest.mark.asyncio
async def test_push_failure_keeps_stored_notification(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    connections = ConnectionManager()
    connections.connect(bob.id, FakeConnection(fail=True))

    await NotificationService(connections).notify_task_assigned(
        db_session, task_id=task.id, task_title=task.title, assignee_id=bob.id, assigner_id=alice.id
    )
    await connections.drain()

    assert len(await _notifications(db_session, bob)) == 1
    assert not connections.is_online(bob.id)


@pytest.mark.asyncio
async def test_inbox_operations(db_session, alice, bob):
    task = await _task(db_session, alice, bob)
    dispatcher = NotificationService()
    first = await dispatcher.notify_task_assigned(
        db_session, task_id=task.id, task_title=task.title, assignee_id=bob.id, assigner_id=alice.id
    )
    await dispatcher.notify_task_completed(
        db_session, task_id=task.id, task_title=task.title, completer_id=alice.id, creator_id=bob.id
    )

    listing = await dispatcher.list_notifications(db_session, bob.id)
    assert listing.unread_count == 2
    assert listing.pagination.total == 2
    assert {n.task_title for n in listing.notifications} == {"Ship release"}

    with pytest.raises(ForbiddenError):
        await dispatcher.mark_read(db_session, first.id, alice.id)
    with pytest.raises(NotFoundError):
        await dispatcher.mark_read(db_session, uuid4(), bob.id)

    marked = await dispatcher.mark_read(db_session, first.id, bob.id)
    assert marked.read is True
    assert marked.read_at is not None
    assert await dispatcher.unread_count(db_session, bob.id) == 1

    unread = await dispatcher.list_notifications(db_session, bob.id, unread_only=True)
    assert len(unread.notifications) == 1

    assert await dispatcher.mark_all_read(db_session, bob.id) == 1
    assert await dispatcher.unread_count(db_session, bob.id) == 0

    await dispatcher.delete_notification(db_session, first.id, bob.id)
    assert await dispatcher.delete_all(db_session, bob.id) == 1
    assert await _notifications(db_session, bob) == []
