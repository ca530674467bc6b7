"""Tasks API endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user, get_services
from taskflow.models.task import TaskPriority, TaskStatus
from taskflow.models.user import User
from taskflow.schemas.common import MessageResponse
from taskflow.schemas.task import TaskCreate, TaskListResponse, TaskResponse, TaskUpdate
from taskflow.services.container import Services

router = APIRouter()


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    priority: Optional[TaskPriority] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """Tasks the caller created or is assigned to."""
    return await services.tasks.list_tasks(
        db,
        current_user.id,
        status=status_filter,
        priority=priority,
        search=search or None,
        page=page,
        limit=limit,
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.tasks.create_task(db, data, current_user.id)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.tasks.get_task(db, task_id, current_user.id)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """Update a task; unknown fields in the body are ignored."""
    return await services.tasks.update_task(db, task_id, data, current_user.id)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.tasks.delete_task(db, task_id, current_user.id)
    return MessageResponse(message="Task deleted successfully")
