"""Comment and activity CRUD operations."""
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from taskflow.crud.base import CRUDBase
from taskflow.models.comment import TaskEntry, Comment, Activity, EntryType


class CRUDEntry(CRUDBase[TaskEntry, dict, dict]):
    """CRUD operations for the comments table (both entry kinds)."""

    async def create_comment(self, db: AsyncSession, *, task_id: UUID, user_id: UUID, content: str) -> Comment:
        comment = Comment(task_id=task_id, user_id=user_id, content=content)
        db.add(comment)
        await db.commit()
        await db.refresh(comment, ["author"])
        return comment

    async def create_activity(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        action: str,
        content: str,
        meta_data: Optional[dict] = None,
    ) -> Activity:
        activity = Activity(
            task_id=task_id,
            user_id=user_id,
            action=action,
            content=content,
            meta_data=meta_data or {},
        )
        db.add(activity)
        await db.commit()
        return activity

    async def list_for_task(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        include_activity: bool = False,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[TaskEntry], int]:
        """Thread of a task, newest first."""
        conditions = [TaskEntry.task_id == task_id]
        if not include_activity:
            conditions.append(TaskEntry.type == EntryType.COMMENT.value)
        result = await db.execute(
            select(TaskEntry)
            .where(*conditions)
            .order_by(TaskEntry.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(TaskEntry).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def activity_log(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Activity], int]:
        """Activity entries of a task in the order they were recorded."""
        result = await db.execute(
            select(Activity)
            .where(Activity.task_id == task_id)
            .order_by(Activity.created_at.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(
            select(func.count())
            .select_from(TaskEntry)
            .where(TaskEntry.task_id == task_id, TaskEntry.type == EntryType.ACTIVITY.value)
        )
        return list(result.scalars().all()), total or 0


entry = CRUDEntry(TaskEntry)
