"""Task schemas."""
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import Field, field_validator
from taskflow.models.task import TaskPriority, TaskStatus
from taskflow.schemas.common import CamelModel, Pagination


class TaskCreate(CamelModel):
    """Task creation schema."""

    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    assigned_to: Optional[UUID] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task title is required")
        return value


class TaskUpdate(CamelModel):
    """Task update schema.

    Only the fields below are writable; anything else in the request body
    is ignored.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    tags: Optional[List[str]] = None
    assigned_to: Optional[UUID] = None


class TaskResponse(CamelModel):
    """Task response schema."""

    id: UUID
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    created_by: UUID
    assigned_to: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None


class TaskListResponse(CamelModel):
    """Paginated task list."""

    tasks: List[TaskResponse]
    pagination: Pagination
