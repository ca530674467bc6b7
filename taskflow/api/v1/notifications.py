"""Notification inbox endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user, get_services
from taskflow.models.user import User
from taskflow.schemas.common import MessageResponse
from taskflow.schemas.notification import NotificationListResponse, NotificationResponse, UnreadCountResponse
from taskflow.services.container import Services

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.notifications.list_notifications(
        db, current_user.id, unread_only=unread_only, page=page, limit=limit
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return UnreadCountResponse(unread_count=await services.notifications.unread_count(db, current_user.id))


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.notifications.mark_all_read(db, current_user.id)
    return MessageResponse(message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.notifications.mark_read(db, notification_id, current_user.id)


@router.delete("", response_model=MessageResponse)
async def delete_all(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.notifications.delete_all(db, current_user.id)
    return MessageResponse(message="All notifications deleted")


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.notifications.delete_notification(db, notification_id, current_user.id)
    return MessageResponse(message="Notification deleted")
