"""Task template models."""
from sqlalchemy import Column, String, ForeignKey, Text, Boolean, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from taskflow.database import Base
from taskflow.db.types import GUID, JSONBType, UTCDateTime
from taskflow.models.task import TaskPriority
from taskflow.utils.timeutils import utcnow


class Template(Base):
    """Reusable blueprint for creating tasks."""

    __tablename__ = "templates"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    title = Column(String(255), nullable=False)
    task_description = Column(Text, nullable=True)
    priority = Column(
        SQLEnum(
            TaskPriority,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    tags = Column(JSONBType(), nullable=False, default=list)
    checklist_items = Column(JSONBType(), nullable=False, default=list)  # [{"text": ..., "completed": bool}]
    default_assignee_id = Column(GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    due_in_days = Column(Integer, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    usage_count = Column(Integer, default=0, server_default="0", nullable=False, index=True)
    created_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=True)

    # Relationships
    owner = relationship("User", foreign_keys=[user_id], back_populates="templates")
    usages = relationship(
        "TemplateUsage", back_populates="template", cascade="all, delete-orphan", passive_deletes=True
    )


class TemplateUsage(Base):
    """Append-only record of one template instantiation."""

    __tablename__ = "template_usage"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    template_id = Column(GUID(), ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    used_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    template = relationship("Template", back_populates="usages")
