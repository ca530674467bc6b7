"""Task CRUD operations."""
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, or_, select, update
from taskflow.crud.base import CRUDBase
from taskflow.models.task import Task, TaskStatus, TaskPriority
from taskflow.schemas.task import TaskCreate, TaskUpdate


class CRUDTask(CRUDBase[Task, TaskCreate, TaskUpdate]):
    """CRUD operations for Task."""

    @staticmethod
    def _filtered(
        user_id: UUID,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        search: Optional[str] = None,
    ):
        conditions = [or_(Task.created_by == user_id, Task.assigned_to == user_id)]
        if status:
            conditions.append(Task.status == status)
        if priority:
            conditions.append(Task.priority == priority)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(func.lower(Task.title).like(pattern), func.lower(Task.description).like(pattern))
            )
        return conditions

    async def list_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Task], int]:
        """Tasks the user created or is assigned to, newest first, with total count."""
        conditions = self._filtered(user_id, status, priority, search)
        result = await db.execute(
            select(Task)
            .where(*conditions)
            .order_by(Task.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Task).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_due_soon(
        self,
        db: AsyncSession,
        *,
        now: datetime,
        until: datetime,
    ) -> List[Task]:
        """Open tasks due within [now, until] that have not been reminded yet."""
        result = await db.execute(
            select(Task).where(
                Task.due_date.is_not(None),
                Task.due_date >= now,
                Task.due_date <= until,
                Task.status.not_in([TaskStatus.COMPLETED, TaskStatus.ARCHIVED]),
                Task.due_reminder_sent_at.is_(None),
            )
        )
        return list(result.scalars().all())

    async def mark_reminded(self, db: AsyncSession, *, task_id: UUID, when: datetime) -> None:
        await db.execute(update(Task).where(Task.id == task_id).values(due_reminder_sent_at=when))
        await db.commit()


task = CRUDTask(Task)
