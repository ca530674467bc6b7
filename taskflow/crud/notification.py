"""Notification CRUD operations."""
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func, select, update
from taskflow.crud.base import CRUDBase
from taskflow.models.notification import Notification
from taskflow.models.task import Task
from taskflow.utils.timeutils import utcnow


class CRUDNotification(CRUDBase[Notification, dict, dict]):
    """CRUD operations for Notification."""

    async def get_with_task_title(
        self, db: AsyncSession, *, id: UUID
    ) -> Tuple[Optional[Notification], Optional[str]]:
        result = await db.execute(
            select(Notification, Task.title)
            .outerjoin(Task, Notification.related_task_id == Task.id)
            .where(Notification.id == id)
        )
        row = result.first()
        if row is None:
            return None, None
        return row[0], row[1]

    async def list_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> List[Tuple[Notification, Optional[str]]]:
        """Notifications of a user with the related task title, newest first."""
        query = (
            select(Notification, Task.title)
            .outerjoin(Task, Notification.related_task_id == Task.id)
            .where(Notification.user_id == user_id)
        )
        if unread_only:
            query = query.where(Notification.read.is_(False))
        result = await db.execute(
            query.order_by(Notification.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def count(self, db: AsyncSession, *, user_id: UUID, unread_only: bool = False) -> int:
        query = select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        return await db.scalar(query) or 0

    async def mark_all_read(self, db: AsyncSession, *, user_id: UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=utcnow())
        )
        await db.commit()
        return result.rowcount or 0

    async def delete_all_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        result = await db.execute(delete(Notification).where(Notification.user_id == user_id))
        await db.commit()
        return result.rowcount or 0

    async def delete_older_than(self, db: AsyncSession, *, cutoff: datetime) -> int:
        result = await db.execute(delete(Notification).where(Notification.created_at < cutoff))
        await db.commit()
        return result.rowcount or 0


notification = CRUDNotification(Notification)
