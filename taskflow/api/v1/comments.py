"""Comment and activity-log endpoints, nested under a task."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user, get_services
from taskflow.models.user import User
from taskflow.schemas.comment import ActivityLogResponse, CommentListResponse, CommentWrite, EntryResponse
from taskflow.schemas.common import MessageResponse
from taskflow.services.container import Services

router = APIRouter()


@router.get("/{task_id}/comments", response_model=CommentListResponse)
async def list_comments(
    task_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    include_activity: bool = Query(default=False, alias="includeActivity"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.comments.list_comments(
        db, task_id, current_user.id, page=page, limit=limit, include_activity=include_activity
    )


@router.get("/{task_id}/activity", response_model=ActivityLogResponse)
async def get_activity_log(
    task_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """Activity entries, oldest first."""
    return await services.comments.get_activity_log(db, task_id, current_user.id, page=page, limit=limit)


@router.post("/{task_id}/comments", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    task_id: UUID,
    data: CommentWrite,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.comments.create_comment(db, task_id, current_user.id, data.content)


@router.put("/{task_id}/comments/{comment_id}", response_model=EntryResponse)
async def update_comment(
    task_id: UUID,
    comment_id: UUID,
    data: CommentWrite,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.comments.update_comment(db, task_id, comment_id, current_user.id, data.content)


@router.delete("/{task_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    task_id: UUID,
    comment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.comments.delete_comment(db, task_id, comment_id, current_user.id)
    return MessageResponse(message="Comment deleted successfully")
