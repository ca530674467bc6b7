"""Task model."""
from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from taskflow.database import Base
from taskflow.db.types import GUID, JSONBType, UTCDateTime
from taskflow.utils.timeutils import utcnow


class TaskStatus(str, Enum):
    """Workflow states of a task."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskPriority(str, Enum):
    """Task priorities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Task(Base):
    """Mutable work item owned by its creator and worked on by its assignee."""

    __tablename__ = "tasks"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(
        SQLEnum(TaskPriority, values_callable=_enum_values, native_enum=False, length=20),
        nullable=False,
        default=TaskPriority.MEDIUM,
        index=True,
    )
    status = Column(
        SQLEnum(TaskStatus, values_callable=_enum_values, native_enum=False, length=20),
        nullable=False,
        default=TaskStatus.TODO,
        index=True,
    )
    due_date = Column(UTCDateTime(), nullable=True, index=True)
    due_reminder_sent_at = Column(UTCDateTime(), nullable=True)  # Reset whenever due_date changes
    tags = Column(JSONBType(), nullable=False, default=list)
    created_by = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=True)

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
    assignee = relationship("User", foreign_keys=[assigned_to])
    entries = relationship(
        "TaskEntry",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskEntry.created_at",
    )
    attachments = relationship(
        "Attachment",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    def participants(self):
        """Creator and assignee ids (may repeat)."""
        return [self.created_by, self.assigned_to]

    def is_participant(self, user_id) -> bool:
        return user_id in (self.created_by, self.assigned_to)
