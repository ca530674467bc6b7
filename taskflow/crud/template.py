"""Template CRUD operations."""
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, or_, select, update
from taskflow.crud.base import CRUDBase
from taskflow.models.template import Template, TemplateUsage
from taskflow.schemas.template import TemplateCreate, TemplateUpdate


class CRUDTemplate(CRUDBase[Template, TemplateCreate, TemplateUpdate]):
    """CRUD operations for Template."""

    @staticmethod
    def _visible_to(user_id: UUID, include_public: bool):
        if include_public:
            return or_(Template.user_id == user_id, Template.is_public.is_(True))
        return Template.user_id == user_id

    async def list_for_user(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        include_public: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Template], int]:
        condition = self._visible_to(user_id, include_public)
        result = await db.execute(
            select(Template)
            .where(condition)
            .order_by(Template.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Template).where(condition))
        return list(result.scalars().all()), total or 0

    async def list_public(
        self,
        db: AsyncSession,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Template], int]:
        """Public templates, most used first."""
        result = await db.execute(
            select(Template)
            .where(Template.is_public.is_(True))
            .order_by(Template.usage_count.desc(), Template.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(
            select(func.count()).select_from(Template).where(Template.is_public.is_(True))
        )
        return list(result.scalars().all()), total or 0

    async def search(
        self,
        db: AsyncSession,
        *,
        term: str,
        user_id: Optional[UUID] = None,
        public_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Template], int]:
        """Case-insensitive match on name, description or task title."""
        pattern = f"%{term.lower()}%"
        conditions = [
            or_(
                func.lower(Template.name).like(pattern),
                func.lower(Template.description).like(pattern),
                func.lower(Template.title).like(pattern),
            )
        ]
        if public_only or user_id is None:
            conditions.append(Template.is_public.is_(True))
        else:
            conditions.append(self._visible_to(user_id, include_public=True))

        result = await db.execute(
            select(Template)
            .where(*conditions)
            .order_by(Template.usage_count.desc(), Template.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Template).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def add_usage(
        self,
        db: AsyncSession,
        *,
        template_id: UUID,
        user_id: UUID,
        task_id: UUID,
    ) -> TemplateUsage:
        """Append a usage record and bump the counter in the current transaction.

        The counter is incremented in SQL so concurrent instantiations never
        lose an update. The caller commits.
        """
        usage = TemplateUsage(template_id=template_id, user_id=user_id, task_id=task_id)
        db.add(usage)
        await db.execute(
            update(Template)
            .where(Template.id == template_id)
            .values(usage_count=Template.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        return usage

    async def get_usage_stats(self, db: AsyncSession, *, template_id: UUID) -> dict:
        result = await db.execute(
            select(
                func.count(TemplateUsage.id),
                func.count(func.distinct(TemplateUsage.user_id)),
                func.max(TemplateUsage.used_at),
            ).where(TemplateUsage.template_id == template_id)
        )
        total_uses, unique_users, last_used = result.one()
        return {
            "total_uses": total_uses or 0,
            "unique_users": unique_users or 0,
            "last_used": last_used,
        }


template = CRUDTemplate(Template)
