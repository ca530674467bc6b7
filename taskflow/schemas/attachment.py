"""Attachment schemas."""
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from taskflow.schemas.common import CamelModel, Pagination


class AttachmentResponse(CamelModel):
    """Attachment with display helpers."""

    id: UUID
    task_id: UUID
    user_id: UUID
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    created_at: datetime
    formatted_size: Optional[str] = None
    icon: Optional[str] = None


class UploadResponse(CamelModel):
    """Upload result."""

    message: str
    attachments: List[AttachmentResponse]


class AttachmentListResponse(CamelModel):
    """Attachments of a task."""

    attachments: List[AttachmentResponse]
    total_size: int
    formatted_total_size: str
    pagination: Pagination


class UserAttachmentsResponse(CamelModel):
    """Recent uploads of the caller."""

    attachments: List[AttachmentResponse]
    total_size: int
    formatted_total_size: str
