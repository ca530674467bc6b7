"""Attachment model."""
from sqlalchemy import Column, String, ForeignKey, BigInteger
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from taskflow.database import Base
from taskflow.db.types import GUID, UTCDateTime
from taskflow.utils.timeutils import utcnow


class Attachment(Base):
    """File attached to a task."""

    __tablename__ = "attachments"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)  # Generated storage name
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_path = Column(String(1024), nullable=False)  # Storage key
    created_at = Column(UTCDateTime(), default=utcnow, server_default=func.now(), nullable=False, index=True)

    # Relationships
    task = relationship("Task", back_populates="attachments")
