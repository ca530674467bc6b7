"""Comment and activity-log entries.

Both live in the ``comments`` table and are told apart by the ``type``
column. They are mapped as two classes with single-table inheritance:
``Comment`` is user-authored and editable, ``Activity`` is written by the
system and has no mutating methods at all.
"""
from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Text, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from taskflow.database import Base
from taskflow.db.types import GUID, JSONBType, UTCDateTime
from taskflow.utils.timeutils import utcnow


class EntryType(str, Enum):
    """Discriminator values of the comments table."""

    COMMENT = "comment"
    ACTIVITY = "activity"


class ActivityAction(str, Enum):
    """Recognized activity-log actions."""

    TASK_CREATED = "task_created"
    STATUS_CHANGED = "status_changed"
    PRIORITY_CHANGED = "priority_changed"
    ASSIGNED = "assigned"
    DUE_DATE_CHANGED = "due_date_changed"
    TASK_COMPLETED = "task_completed"
    TASK_REOPENED = "task_reopened"
    FILES_UPLOADED = "files_uploaded"
    FILE_DELETED = "file_deleted"
    TASK_CREATED_FROM_TEMPLATE = "task_created_from_template"


class TaskEntry(Base):
    """Row of a task's discussion thread."""

    __tablename__ = "comments"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, index=True)
    edited = Column(Boolean, default=False, nullable=False)
    created_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(UTCDateTime(), nullable=True)

    # Relationships
    task = relationship("Task", back_populates="entries")
    author = relationship("User", lazy="selectin")

    __mapper_args__ = {"polymorphic_on": type}


class Comment(TaskEntry):
    """User-authored comment."""

    __mapper_args__ = {"polymorphic_identity": EntryType.COMMENT.value}

    def edit(self, content: str) -> None:
        self.content = content
        self.edited = True
        self.updated_at = utcnow()


class Activity(TaskEntry):
    """Immutable, system-generated audit entry."""

    action = Column(String(50), nullable=True, index=True)
    meta_data = Column(JSONBType(), nullable=True, default=dict)

    __mapper_args__ = {"polymorphic_identity": EntryType.ACTIVITY.value}
