"""Tests for activity message rendering and recording."""
from datetime import datetime, timezone

import pytest

from taskflow.models.comment import Activity, ActivityAction
from taskflow.models.task import Task
from taskflow.services.activity_service import ActivityService, format_activity_message


@pytest.mark.parametrize(
    "action, metadata, expected",
    [
        ("status_changed", {"oldStatus": "todo", "newStatus": "in_progress"},
         'changed status from "todo" to "in_progress"'),
        ("priority_changed", {"oldPriority": "low", "newPriority": "urgent"},
         'changed priority from "low" to "urgent"'),
        ("assigned", {"assigneeName": "Bob Jones"}, "assigned task to Bob Jones"),
        ("due_date_changed", {"newDueDate": datetime(2026, 5, 1, 12, tzinfo=timezone.utc)},
         "changed due date to 2026-05-01"),
        ("due_date_changed", {"oldDueDate": "2026-05-01", "newDueDate": None}, "removed the due date"),
        ("task_created", None, "created this task"),
        ("task_completed", {}, "marked task as completed"),
        ("task_reopened", {}, "reopened this task"),
        ("files_uploaded", {"count": 2, "files": "a.pdf, b.png"}, "uploaded 2 file(s): a.pdf, b.png"),
        ("file_deleted", {"fileName": "a.pdf"}, "deleted file: a.pdf"),
        ("task_created_from_template", {"templateName": "Bug report"},
         "created this task from template: Bug report"),
    ],
)
def test_format_activity_message(action, metadata, expected):
    assert format_activity_message(action, metadata) == expected


def test_unknown_action_falls_back_to_generic_message():
    assert format_activity_message("archived_by_robot", {"x": 1}) == "performed action: archived_by_robot"


def test_enum_actions_are_accepted():
    assert format_activity_message(ActivityAction.TASK_CREATED) == "created this task"


@pytest.mark.asyncio
async def test_record_persists_activity_entry(db_session, alice):
    task = Task(title="Write docs", created_by=alice.id, assigned_to=alice.id)
    db_session.add(task)
    await db_session.commit()

    entry = await ActivityService().record(
        db_session,
        task_id=task.id,
        user_id=alice.id,
        action=ActivityAction.STATUS_CHANGED,
        metadata={"oldStatus": "todo", "newStatus": "completed"},
    )

    stored = await db_session.get(Activity, entry.id)
    assert isinstance(stored, Activity)
    assert stored.type == "activity"
    assert stored.action == "status_changed"
    assert stored.content == 'changed status from "todo" to "completed"'
    assert stored.meta_data == {"oldStatus": "todo", "newStatus": "completed"}


@pytest.mark.asyncio
async def test_record_unknown_action(db_session, alice):
    task = Task(title="Write docs", created_by=alice.id, assigned_to=alice.id)
    db_session.add(task)
    await db_session.commit()

    entry = await ActivityService().record(db_session, task_id=task.id, user_id=alice.id, action="custom")

    assert entry.content == "performed action: custom"
