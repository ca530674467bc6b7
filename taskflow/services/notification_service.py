"""Notification dispatcher.

One method per trigger. Each selects its recipients, drops the user who
caused the event, persists one notification per recipient and pushes it
to the recipient's live connections. A failure for one recipient does not
stop delivery to the others.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import ForbiddenError, NotFoundError
from taskflow.core.side_effects import SideEffects
from taskflow.crud.notification import notification as notification_crud
from taskflow.crud.user import user as user_crud
from taskflow.middleware.metrics import notifications_created_total
from taskflow.models.notification import Notification, NotificationType
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.schemas.common import Pagination
from taskflow.schemas.notification import NotificationListResponse, NotificationResponse
from taskflow.utils.recipients import recipients

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50
NEW_NOTIFICATION_EVENT = "notification:new"


def preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    """First ``length`` characters of a comment, with an ellipsis if cut."""
    if len(content) > length:
        return content[:length] + "..."
    return content


def task_url(task_id: UUID, comments: bool = False) -> str:
    return f"/tasks/{task_id}#comments" if comments else f"/tasks/{task_id}"


class NotificationService:
    """Creates and pushes notifications for task events."""

    def __init__(self, connections: Optional[ConnectionManager] = None):
        self.connections = connections

    async def _display_name(self, db: AsyncSession, user_id: UUID) -> str:
        user_obj = await user_crud.get(db, user_id)
        if user_obj is None:
            return "Someone"
        return user_obj.full_name

    async def _deliver(
        self,
        db: AsyncSession,
        recipient_ids: Iterable[UUID],
        *,
        type: NotificationType,
        title: str,
        message: str,
        task_id: Optional[UUID] = None,
        task_title: Optional[str] = None,
        comment_id: Optional[UUID] = None,
        action_url: Optional[str] = None,
    ) -> List[Notification]:
        created: List[Notification] = []

        def send_to(recipient_id: UUID):
            async def action():
                notification = Notification(
                    user_id=recipient_id,
                    type=type,
                    title=title,
                    message=message,
                    related_task_id=task_id,
                    related_comment_id=comment_id,
                    action_url=action_url,
                )
                db.add(notification)
                await db.commit()
                created.append(notification)
                notifications_created_total.labels(type=type.value).inc()
                if self.connections is not None:
                    payload = NotificationResponse.build(notification, task_title).to_payload()
                    self.connections.push_to_user(recipient_id, NEW_NOTIFICATION_EVENT, payload)

            return action

        effects = SideEffects(db)
        for recipient_id in recipient_ids:
            effects.add(f"notify:{type.value}", send_to(recipient_id))
        await effects.run()
        return created

    async def notify_task_assigned(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        assignee_id: UUID,
        assigner_id: UUID,
    ) -> Optional[Notification]:
        if assignee_id == assigner_id:
            return None

        assigner_name = await self._display_name(db, assigner_id)
        created = await self._deliver(
            db,
            [assignee_id],
            type=NotificationType.TASK_ASSIGNED,
            title="New Task Assignment",
            message=f'{assigner_name} assigned you to "{task_title}"',
            task_id=task_id,
            task_title=task_title,
            action_url=task_url(task_id),
        )
        logger.info("Task assignment notification sent to user %s", assignee_id)
        return created[0] if created else None

    async def notify_status_changed(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        new_status: str,
        actor_id: UUID,
        creator_id: UUID,
        assignee_id: UUID,
    ) -> List[Notification]:
        targets = recipients([creator_id, assignee_id], exclude=actor_id)
        if not targets:
            return []

        actor_name = await self._display_name(db, actor_id)
        status_value = getattr(new_status, "value", new_status)
        created = await self._deliver(
            db,
            targets,
            type=NotificationType.TASK_STATUS_CHANGED,
            title="Task Status Updated",
            message=f'{actor_name} changed "{task_title}" status to {status_value}',
            task_id=task_id,
            task_title=task_title,
            action_url=task_url(task_id),
        )
        logger.info("Task status change notifications sent for task %s", task_id)
        return created

    async def notify_new_comment(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        comment_id: Optional[UUID],
        content: str,
        commenter_id: UUID,
        creator_id: UUID,
        assignee_id: UUID,
    ) -> List[Notification]:
        targets = recipients([creator_id, assignee_id], exclude=commenter_id)
        if not targets:
            return []

        commenter_name = await self._display_name(db, commenter_id)
        created = await self._deliver(
            db,
            targets,
            type=NotificationType.NEW_COMMENT,
            title="New Comment",
            message=f'{commenter_name} commented on "{task_title}": {preview(content)}',
            task_id=task_id,
            task_title=task_title,
            comment_id=comment_id,
            action_url=task_url(task_id, comments=True),
        )
        logger.info("New comment notifications sent for task %s", task_id)
        return created

    async def notify_task_completed(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        completer_id: UUID,
        creator_id: UUID,
    ) -> Optional[Notification]:
        if completer_id == creator_id:
            return None

        completer_name = await self._display_name(db, completer_id)
        created = await self._deliver(
            db,
            [creator_id],
            type=NotificationType.TASK_COMPLETED,
            title="Task Completed",
            message=f'{completer_name} completed "{task_title}"',
            task_id=task_id,
            task_title=task_title,
            action_url=task_url(task_id),
        )
        logger.info("Task completion notification sent for task %s", task_id)
        return created[0] if created else None

    async def notify_mentioned(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        comment_id: Optional[UUID],
        content: str,
        mentioned_id: UUID,
        commenter_id: UUID,
    ) -> Optional[Notification]:
        if mentioned_id == commenter_id:
            return None

        commenter_name = await self._display_name(db, commenter_id)
        created = await self._deliver(
            db,
            [mentioned_id],
            type=NotificationType.MENTIONED,
            title="You Were Mentioned",
            message=f'{commenter_name} mentioned you in "{task_title}": {preview(content)}',
            task_id=task_id,
            task_title=task_title,
            comment_id=comment_id,
            action_url=task_url(task_id, comments=True),
        )
        logger.info("Mention notification sent to user %s", mentioned_id)
        return created[0] if created else None

    async def notify_due_soon(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        task_title: str,
        assignee_id: UUID,
        due_date: datetime,
    ) -> Optional[Notification]:
        created = await self._deliver(
            db,
            [assignee_id],
            type=NotificationType.TASK_DUE_SOON,
            title="Task Due Soon",
            message=f'"{task_title}" is due on {due_date.date().isoformat()}',
            task_id=task_id,
            task_title=task_title,
            action_url=task_url(task_id),
        )
        logger.info("Due soon notification sent for task %s", task_id)
        return created[0] if created else None

    # Inbox

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> NotificationListResponse:
        rows = await notification_crud.list_for_user(
            db, user_id=user_id, unread_only=unread_only, page=page, limit=limit
        )
        total = await notification_crud.count(db, user_id=user_id, unread_only=unread_only)
        unread = await notification_crud.count(db, user_id=user_id, unread_only=True)
        return NotificationListResponse(
            notifications=[NotificationResponse.build(n, title) for n, title in rows],
            unread_count=unread,
            pagination=Pagination.build(page, limit, total),
        )

    async def unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_crud.count(db, user_id=user_id, unread_only=True)

    async def _get_owned(self, db: AsyncSession, notification_id: UUID, user_id: UUID):
        found, task_title = await notification_crud.get_with_task_title(db, id=notification_id)
        if found is None:
            raise NotFoundError("Notification not found")
        if found.user_id != user_id:
            raise ForbiddenError("Access denied")
        return found, task_title

    async def mark_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> NotificationResponse:
        found, task_title = await self._get_owned(db, notification_id, user_id)
        if not found.read:
            found.mark_read()
            await db.commit()
        return NotificationResponse.build(found, task_title)

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        updated = await notification_crud.mark_all_read(db, user_id=user_id)
        logger.info("Marked %s notifications read for user %s", updated, user_id)
        return updated

    async def delete_notification(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> None:
        await self._get_owned(db, notification_id, user_id)
        await notification_crud.remove(db, id=notification_id)

    async def delete_all(self, db: AsyncSession, user_id: UUID) -> int:
        deleted = await notification_crud.delete_all_for_user(db, user_id=user_id)
        logger.info("Deleted %s notifications for user %s", deleted, user_id)
        return deleted
