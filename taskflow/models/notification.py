"""Notification model."""
from sqlalchemy import Column, String, ForeignKey, Enum as SQLEnum, Text, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from enum import Enum
from taskflow.database import Base
from taskflow.db.types import GUID, UTCDateTime
from taskflow.utils.timeutils import utcnow


class NotificationType(str, Enum):
    """Notification types."""

    TASK_ASSIGNED = "task_assigned"
    TASK_STATUS_CHANGED = "task_status_changed"
    NEW_COMMENT = "new_comment"
    TASK_DUE_SOON = "task_due_soon"
    TASK_COMPLETED = "task_completed"
    MENTIONED = "mentioned"


class Notification(Base):
    """Per-recipient notification record."""

    __tablename__ = "notifications"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(
        SQLEnum(
            NotificationType,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
            native_enum=False,
            length=40,
        ),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    related_comment_id = Column(GUID(), ForeignKey("comments.id", ondelete="SET NULL"), nullable=True)
    action_url = Column(String(500), nullable=True)
    read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="notifications")

    def mark_read(self) -> None:
        if not self.read:
            self.read = True
            self.read_at = utcnow()
