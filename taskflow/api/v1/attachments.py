"""Attachment endpoints, nested under a task."""
from typing import List
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user, get_services
from taskflow.models.user import User
from taskflow.schemas.attachment import AttachmentListResponse, UploadResponse, UserAttachmentsResponse
from taskflow.schemas.common import MessageResponse
from taskflow.services.attachment_service import IncomingFile
from taskflow.services.container import Services

router = APIRouter()


@router.get("/attachments/recent", response_model=UserAttachmentsResponse)
async def recent_attachments(
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """The caller's latest uploads across all tasks."""
    return await services.attachments.recent_for_user(db, current_user.id, limit=limit)


@router.post("/{task_id}/attachments", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_attachments(
    task_id: UUID,
    files: List[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    incoming = []
    for upload in files:
        incoming.append(
            IncomingFile(
                original_name=upload.filename or "file",
                mime_type=upload.content_type or "application/octet-stream",
                data=await upload.read(),
            )
        )
    return await services.attachments.upload(db, task_id, current_user.id, incoming)


@router.get("/{task_id}/attachments", response_model=AttachmentListResponse)
async def list_attachments(
    task_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.attachments.list_attachments(db, task_id, current_user.id, page=page, limit=limit)


@router.get("/{task_id}/attachments/{attachment_id}/download")
async def download_attachment(
    task_id: UUID,
    attachment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    found, url, data = await services.attachments.download(db, task_id, attachment_id, current_user.id)
    if url is not None:
        return RedirectResponse(url)
    return Response(
        content=data,
        media_type=found.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(found.original_name)}"},
    )


@router.delete("/{task_id}/attachments/{attachment_id}", response_model=MessageResponse)
async def delete_attachment(
    task_id: UUID,
    attachment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.attachments.delete(db, task_id, attachment_id, current_user.id)
    return MessageResponse(message="Attachment deleted successfully")
