"""Notification schemas."""
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from taskflow.models.notification import Notification, NotificationType
from taskflow.schemas.common import CamelModel, Pagination


class NotificationResponse(CamelModel):
    """Notification response schema."""

    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    related_task_id: Optional[UUID] = None
    related_comment_id: Optional[UUID] = None
    action_url: Optional[str] = None
    read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime
    task_title: Optional[str] = None

    @classmethod
    def build(cls, notification: Notification, task_title: Optional[str] = None) -> "NotificationResponse":
        response = cls.model_validate(notification)
        response.task_title = task_title
        return response


class NotificationListResponse(CamelModel):
    """Paginated notifications with unread counter."""

    notifications: List[NotificationResponse]
    unread_count: int
    pagination: Pagination


class UnreadCountResponse(CamelModel):
    """Unread notifications counter."""

    unread_count: int
