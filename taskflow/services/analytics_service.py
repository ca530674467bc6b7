"""Analytics over the caller's assigned tasks."""
from collections import defaultdict
from datetime import timedelta
from typing import Dict, List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.models.task import Task, TaskPriority, TaskStatus
from taskflow.schemas.analytics import OverviewResponse, ProductivityPoint, TrendPoint
from taskflow.utils.timeutils import as_utc, utcnow

PRODUCTIVITY_WINDOW_DAYS = 30


class AnalyticsService:
    """Read-only aggregates. Completion time is taken from ``updated_at``."""

    @staticmethod
    async def overview(db: AsyncSession, user_id: UUID) -> OverviewResponse:
        result = await db.execute(
            select(Task.status, func.count()).where(Task.assigned_to == user_id).group_by(Task.status)
        )
        by_status: Dict[TaskStatus, int] = {status: count for status, count in result.all()}
        overdue = await db.scalar(
            select(func.count())
            .select_from(Task)
            .where(
                Task.assigned_to == user_id,
                Task.due_date.is_not(None),
                Task.due_date < utcnow(),
                Task.status.not_in([TaskStatus.COMPLETED, TaskStatus.ARCHIVED]),
            )
        )
        return OverviewResponse(
            total_tasks=sum(by_status.values()),
            completed=by_status.get(TaskStatus.COMPLETED, 0),
            in_progress=by_status.get(TaskStatus.IN_PROGRESS, 0),
            todo=by_status.get(TaskStatus.TODO, 0),
            overdue=overdue or 0,
        )

    @staticmethod
    async def _completed(db: AsyncSession, user_id: UUID, since=None) -> List[Task]:
        query = select(Task).where(Task.assigned_to == user_id, Task.status == TaskStatus.COMPLETED)
        if since is not None:
            query = query.where(Task.updated_at >= since)
        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def productivity(cls, db: AsyncSession, user_id: UUID) -> List[ProductivityPoint]:
        """Completed tasks per day over the last 30 days, oldest first."""
        since = utcnow() - timedelta(days=PRODUCTIVITY_WINDOW_DAYS)
        per_day: Dict = defaultdict(int)
        for task in await cls._completed(db, user_id, since):
            finished = as_utc(task.updated_at or task.created_at)
            per_day[finished.date()] += 1
        return [ProductivityPoint(date=day, completed_tasks=count) for day, count in sorted(per_day.items())]

    @classmethod
    async def trends(cls, db: AsyncSession, user_id: UUID) -> List[TrendPoint]:
        """Completed count and mean completion time (seconds) per priority."""
        durations: Dict[TaskPriority, List[float]] = defaultdict(list)
        for task in await cls._completed(db, user_id):
            finished = as_utc(task.updated_at or task.created_at)
            durations[task.priority].append((finished - as_utc(task.created_at)).total_seconds())

        points = []
        for priority in TaskPriority:
            values = durations.get(priority)
            if not values:
                continue
            points.append(
                TrendPoint(
                    priority=priority.value,
                    count=len(values),
                    avg_completion_time=sum(values) / len(values),
                )
            )
        return points
