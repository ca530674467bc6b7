"""User CRUD operations."""
from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from taskflow.crud.base import CRUDBase
from taskflow.models.task import Task, TaskStatus
from taskflow.models.user import User
from taskflow.schemas.user import UserCreate, UserUpdate


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    """CRUD operations for User."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get user by email."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def get_many_by_email(self, db: AsyncSession, *, emails: Iterable[str]) -> List[User]:
        """Resolve a set of emails to users (case-insensitive)."""
        lowered = {email.lower() for email in emails}
        if not lowered:
            return []
        result = await db.execute(select(User).where(func.lower(User.email).in_(lowered)))
        return list(result.scalars().all())

    async def get_stats(self, db: AsyncSession, *, user_id: UUID) -> dict:
        """Created / assigned / completed task counters for a user."""
        result = await db.execute(
            select(
                func.count().filter(Task.created_by == user_id),
                func.count().filter(Task.assigned_to == user_id),
                func.count().filter(Task.assigned_to == user_id, Task.status == TaskStatus.COMPLETED),
            ).select_from(Task)
        )
        created, assigned, completed = result.one()
        return {
            "created_tasks": created or 0,
            "assigned_tasks": assigned or 0,
            "completed_tasks": completed or 0,
        }


user = CRUDUser(User)
