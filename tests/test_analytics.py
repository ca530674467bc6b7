"""Tests for the analytics aggregates."""
from datetime import timedelta

import pytest

from taskflow.models.task import TaskPriority, TaskStatus
from taskflow.schemas.task import TaskCreate, TaskUpdate
from taskflow.services.analytics_service import AnalyticsService
from taskflow.utils.timeutils import utcnow


@pytest.mark.asyncio
async def test_overview_productivity_and_trends(db_session, services, alice, bob):
    yesterday = utcnow() - timedelta(days=1)
    await services.tasks.create_task(db_session, TaskCreate(title="Late", due_date=yesterday), alice.id)
    started = await services.tasks.create_task(db_session, TaskCreate(title="Started"), alice.id)
    finished = await services.tasks.create_task(
        db_session, TaskCreate(title="Finished", priority=TaskPriority.HIGH), alice.id
    )
    await services.tasks.create_task(db_session, TaskCreate(title="Bob's", assigned_to=bob.id), alice.id)
    await services.tasks.update_task(
        db_session, started.id, TaskUpdate(status=TaskStatus.IN_PROGRESS), alice.id
    )
    await services.tasks.update_task(
        db_session, finished.id, TaskUpdate(status=TaskStatus.COMPLETED), alice.id
    )

    overview = await AnalyticsService.overview(db_session, alice.id)
    assert overview.total_tasks == 3
    assert overview.completed == 1
    assert overview.in_progress == 1
    assert overview.todo == 1
    assert overview.overdue == 1

    productivity = await AnalyticsService.productivity(db_session, alice.id)
    assert [p.completed_tasks for p in productivity] == [1]

    trends = await AnalyticsService.trends(db_session, alice.id)
    assert [(t.priority, t.count) for t in trends] == [("high", 1)]
    assert trends[0].avg_completion_time >= 0

    assert (await AnalyticsService.overview(db_session, bob.id)).total_tasks == 1
