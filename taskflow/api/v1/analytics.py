"""Analytics endpoints."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user
from taskflow.models.user import User
from taskflow.schemas.analytics import OverviewResponse, ProductivityPoint, TrendPoint
from taskflow.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/overview", response_model=OverviewResponse)
async def overview(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await AnalyticsService.overview(db, current_user.id)


@router.get("/productivity", response_model=List[ProductivityPoint])
async def productivity(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Completed tasks per day over the last 30 days."""
    return await AnalyticsService.productivity(db, current_user.id)


@router.get("/trends", response_model=List[TrendPoint])
async def trends(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return await AnalyticsService.trends(db, current_user.id)
