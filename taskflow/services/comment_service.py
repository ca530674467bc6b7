"""Task discussion: comments, mentions and the activity log."""
import logging
import re
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskflow.core.side_effects import SideEffects
from taskflow.crud.comment import entry as entry_crud
from taskflow.crud.user import user as user_crud
from taskflow.models.comment import Activity, Comment, TaskEntry
from taskflow.models.task import Task
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.schemas.comment import ActivityLogResponse, CommentListResponse, EntryResponse
from taskflow.schemas.common import Pagination
from taskflow.services.cache_service import TaskCache, comment_list_key
from taskflow.services.notification_service import NotificationService
from taskflow.services.task_service import TaskService

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"(?<![\w.+-])@([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})")


def extract_mentions(content: str) -> List[str]:
    """Emails mentioned as ``@<email>``, lowercased, first occurrence order."""
    return list(dict.fromkeys(match.lower() for match in MENTION_PATTERN.findall(content or "")))


class CommentService:
    """Comment thread operations for one task at a time."""

    def __init__(
        self,
        tasks: TaskService,
        cache: TaskCache,
        connections: ConnectionManager,
        notifications: NotificationService,
    ):
        self.tasks = tasks
        self.cache = cache
        self.connections = connections
        self.notifications = notifications

    async def _get_entry(self, db: AsyncSession, task_id: UUID, comment_id: UUID) -> TaskEntry:
        found = await entry_crud.get(db, comment_id)
        if found is None or found.task_id != task_id:
            raise NotFoundError("Comment not found")
        return found

    async def list_comments(
        self,
        db: AsyncSession,
        task_id: UUID,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int = 50,
        include_activity: bool = False,
    ) -> CommentListResponse:
        await self.tasks.get_accessible_task(db, task_id, user_id)

        key = comment_list_key(task_id, page, limit, include_activity)
        cached = await self.cache.get_json(key)
        if cached is not None:
            return CommentListResponse.model_validate(cached)

        entries, total = await entry_crud.list_for_task(
            db, task_id=task_id, include_activity=include_activity, page=page, limit=limit
        )
        response = CommentListResponse(
            comments=[EntryResponse.model_validate(e) for e in entries],
            pagination=Pagination.build(page, limit, total),
        )
        await self.cache.set_json(key, response.model_dump(mode="json", by_alias=False))
        return response

    async def get_activity_log(
        self,
        db: AsyncSession,
        task_id: UUID,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> ActivityLogResponse:
        await self.tasks.get_accessible_task(db, task_id, user_id)
        activities, total = await entry_crud.activity_log(db, task_id=task_id, page=page, limit=limit)
        return ActivityLogResponse(
            activities=[EntryResponse.model_validate(a) for a in activities],
            pagination=Pagination.build(page, limit, total),
        )

    async def create_comment(
        self,
        db: AsyncSession,
        task_id: UUID,
        user_id: UUID,
        content: str,
    ) -> EntryResponse:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment content is required")
        task = await self.tasks.get_accessible_task(db, task_id, user_id)
        task_title, creator_id, assignee_id = task.title, task.created_by, task.assigned_to

        comment = await entry_crud.create_comment(db, task_id=task_id, user_id=user_id, content=content)
        response = EntryResponse.model_validate(comment)
        logger.info("Comment created: %s on task %s by user %s", comment.id, task_id, user_id)

        effects = SideEffects(db)
        effects.add("cache:comments", lambda: self.cache.invalidate_comments(task_id))
        effects.add(
            "push:comment_created",
            lambda: self._push(task_id, "comment:created", response.to_payload()),
        )
        effects.add(
            "notify:new_comment",
            lambda: self.notifications.notify_new_comment(
                db,
                task_id=task_id,
                task_title=task_title,
                comment_id=response.id,
                content=content,
                commenter_id=user_id,
                creator_id=creator_id,
                assignee_id=assignee_id,
            ),
        )
        effects.add(
            "notify:mentioned",
            lambda: self._notify_mentions(db, task_id, task_title, response.id, content, user_id),
        )
        await effects.run()
        return response

    async def _notify_mentions(
        self,
        db: AsyncSession,
        task_id: UUID,
        task_title: str,
        comment_id: UUID,
        content: str,
        commenter_id: UUID,
    ) -> None:
        emails = extract_mentions(content)
        if not emails:
            return
        mentioned_ids = [u.id for u in await user_crud.get_many_by_email(db, emails=emails)]
        for mentioned_id in mentioned_ids:
            await self.notifications.notify_mentioned(
                db,
                task_id=task_id,
                task_title=task_title,
                comment_id=comment_id,
                content=content,
                mentioned_id=mentioned_id,
                commenter_id=commenter_id,
            )

    async def update_comment(
        self,
        db: AsyncSession,
        task_id: UUID,
        comment_id: UUID,
        user_id: UUID,
        content: str,
    ) -> EntryResponse:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment content is required")
        found = await self._get_entry(db, task_id, comment_id)
        if found.user_id != user_id:
            raise ForbiddenError("You can only edit your own comments")
        if not isinstance(found, Comment):
            raise ValidationError("Cannot edit activity log entries")

        found.edit(content)
        await db.commit()
        await db.refresh(found, ["author"])
        response = EntryResponse.model_validate(found)
        logger.info("Comment updated: %s by user %s", comment_id, user_id)

        effects = SideEffects(db)
        effects.add("cache:comments", lambda: self.cache.invalidate_comments(task_id))
        effects.add(
            "push:comment_updated",
            lambda: self._push(task_id, "comment:updated", response.to_payload()),
        )
        await effects.run()
        return response

    async def delete_comment(self, db: AsyncSession, task_id: UUID, comment_id: UUID, user_id: UUID) -> None:
        found = await self._get_entry(db, task_id, comment_id)
        task: Optional[Task] = await db.get(Task, task_id)
        if found.user_id != user_id and (task is None or task.created_by != user_id):
            raise ForbiddenError("Access denied")
        if isinstance(found, Activity):
            raise ValidationError("Cannot delete activity log entries")

        await db.delete(found)
        await db.commit()
        logger.info("Comment deleted: %s by user %s", comment_id, user_id)

        effects = SideEffects(db)
        effects.add("cache:comments", lambda: self.cache.invalidate_comments(task_id))
        effects.add(
            "push:comment_deleted",
            lambda: self._push(task_id, "comment:deleted", {"id": str(comment_id), "taskId": str(task_id)}),
        )
        await effects.run()

    async def _push(self, task_id: UUID, event: str, payload) -> None:
        self.connections.push_to_comments_channel(task_id, event, payload)
