"""Template schemas."""
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import Field, field_validator
from taskflow.models.task import TaskPriority
from taskflow.schemas.common import CamelModel, Pagination
from taskflow.schemas.task import TaskResponse


class TemplateCreate(CamelModel):
    """Template creation schema."""

    name: Optional[str] = None
    description: Optional[str] = None
    title: Optional[str] = None
    task_description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    checklist_items: List[Dict[str, Any]] = Field(default_factory=list)
    default_assignee_id: Optional[UUID] = None
    due_in_days: Optional[int] = Field(default=None, ge=0)
    is_public: bool = False


class TemplateUpdate(CamelModel):
    """Template update schema (allowed fields only)."""

    name: Optional[str] = None
    description: Optional[str] = None
    title: Optional[str] = None
    task_description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    checklist_items: Optional[List[Dict[str, Any]]] = None
    default_assignee_id: Optional[UUID] = None
    due_in_days: Optional[int] = Field(default=None, ge=0)
    is_public: Optional[bool] = None


class TemplateInstantiate(CamelModel):
    """Overrides applied when creating a task from a template."""

    title: Optional[str] = Field(default=None, validation_alias="customTitle")
    description: Optional[str] = Field(default=None, validation_alias="customDescription")
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    assigned_to: Optional[UUID] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class TemplateStats(CamelModel):
    """Usage statistics derived from usage records."""

    total_uses: int = 0
    unique_users: int = 0
    last_used: Optional[datetime] = None


class TemplateResponse(CamelModel):
    """Template response schema."""

    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    title: str
    task_description: Optional[str] = None
    priority: TaskPriority
    tags: List[str] = Field(default_factory=list)
    checklist_items: List[Dict[str, Any]] = Field(default_factory=list)
    default_assignee_id: Optional[UUID] = None
    due_in_days: Optional[int] = None
    is_public: bool
    usage_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class TemplateDetailResponse(TemplateResponse):
    """Template with usage statistics."""

    stats: TemplateStats


class TemplateSummary(CamelModel):
    """Template reference returned alongside an instantiated task."""

    id: UUID
    name: str
    checklist_items: List[Dict[str, Any]] = Field(default_factory=list)


class InstantiationResponse(CamelModel):
    """Result of creating a task from a template."""

    task: TaskResponse
    template: TemplateSummary


class TemplateListResponse(CamelModel):
    """Paginated templates."""

    templates: List[TemplateResponse]
    pagination: Pagination


class TemplateSearchResponse(TemplateListResponse):
    """Template search results."""

    query: str
