"""Attachment CRUD operations."""
from typing import List, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from taskflow.crud.base import CRUDBase
from taskflow.models.attachment import Attachment


class CRUDAttachment(CRUDBase[Attachment, dict, dict]):
    """CRUD operations for Attachment."""

    async def list_for_task(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Attachment], int]:
        result = await db.execute(
            select(Attachment)
            .where(Attachment.task_id == task_id)
            .order_by(Attachment.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(
            select(func.count()).select_from(Attachment).where(Attachment.task_id == task_id)
        )
        return list(result.scalars().all()), total or 0

    async def total_size_for_task(self, db: AsyncSession, *, task_id: UUID) -> int:
        return await db.scalar(
            select(func.coalesce(func.sum(Attachment.file_size), 0)).where(Attachment.task_id == task_id)
        ) or 0

    async def total_size_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        return await db.scalar(
            select(func.coalesce(func.sum(Attachment.file_size), 0)).where(Attachment.user_id == user_id)
        ) or 0

    async def recent_for_user(self, db: AsyncSession, *, user_id: UUID, limit: int = 10) -> List[Attachment]:
        result = await db.execute(
            select(Attachment)
            .where(Attachment.user_id == user_id)
            .order_by(Attachment.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


attachment = CRUDAttachment(Attachment)
