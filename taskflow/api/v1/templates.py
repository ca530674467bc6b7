"""Task template endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user, get_services
from taskflow.models.user import User
from taskflow.schemas.common import MessageResponse
from taskflow.schemas.template import (
    InstantiationResponse,
    TemplateCreate,
    TemplateDetailResponse,
    TemplateInstantiate,
    TemplateListResponse,
    TemplateResponse,
    TemplateSearchResponse,
    TemplateUpdate,
)
from taskflow.services.container import Services

router = APIRouter()


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    include_public: bool = Query(default=False, alias="includePublic"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.list_templates(
        db, current_user.id, include_public=include_public, page=page, limit=limit
    )


@router.get("/public", response_model=TemplateListResponse)
async def list_public_templates(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """Public templates, most used first."""
    return await services.templates.list_public(db, page=page, limit=limit)


@router.get("/search", response_model=TemplateSearchResponse)
async def search_templates(
    q: Optional[str] = None,
    public_only: bool = Query(default=False, alias="publicOnly"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.search_templates(
        db, current_user.id, query=q, public_only=public_only, page=page, limit=limit
    )


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    data: TemplateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.create_template(db, data, current_user.id)


@router.get("/{template_id}", response_model=TemplateDetailResponse)
async def get_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.get_template(db, template_id, current_user.id)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    data: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.update_template(db, template_id, data, current_user.id)


@router.delete("/{template_id}", response_model=MessageResponse)
async def delete_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    await services.templates.delete_template(db, template_id, current_user.id)
    return MessageResponse(message="Template deleted successfully")


@router.post(
    "/{template_id}/create-task",
    response_model=InstantiationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_from_template(
    template_id: UUID,
    overrides: Optional[TemplateInstantiate] = Body(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    """Create a task from a template; non-empty fields in the body override its defaults."""
    return await services.templates.instantiate(db, template_id, current_user.id, overrides)


@router.post(
    "/{template_id}/duplicate",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    services: Services = Depends(get_services),
):
    return await services.templates.duplicate(db, template_id, current_user.id)
