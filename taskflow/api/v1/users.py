"""User profile endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import ConflictError
from taskflow.crud.user import user as user_crud
from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user
from taskflow.models.user import User
from taskflow.schemas.user import UserResponse, UserStats, UserUpdate

router = APIRouter()


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """Update the caller's name or email."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        if changes["email"] != current_user.email:
            existing = await user_crud.get_by_email(db, email=changes["email"])
            if existing and existing.id != current_user.id:
                raise ConflictError("Email already in use")
    for name in ("first_name", "last_name"):
        if name in changes:
            changes[name] = changes[name].strip()
    return await user_crud.update(db, db_obj=current_user, obj_in=changes)


@router.get("/stats", response_model=UserStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    stats = await user_crud.get_stats(db, user_id=current_user.id)
    return UserStats(**stats)
