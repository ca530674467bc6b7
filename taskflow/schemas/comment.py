"""Comment and activity schemas."""
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import Field, field_validator
from taskflow.models.comment import EntryType
from taskflow.schemas.common import CamelModel, Pagination
from taskflow.schemas.user import UserSummary


class CommentWrite(CamelModel):
    """Comment create/update payload."""

    content: str

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        return value.strip()


class EntryResponse(CamelModel):
    """Comment or activity entry."""

    id: UUID
    task_id: UUID
    user_id: UUID
    content: str
    type: EntryType
    edited: bool = False
    action: Optional[str] = None
    meta_data: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="metadata")
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = Field(default=None, validation_alias="author")


class CommentListResponse(CamelModel):
    """Paginated comment thread."""

    comments: List[EntryResponse]
    pagination: Pagination


class ActivityLogResponse(CamelModel):
    """Paginated activity log."""

    activities: List[EntryResponse]
    pagination: Pagination
