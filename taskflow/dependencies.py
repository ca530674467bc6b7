"""FastAPI dependencies for authentication and service access."""
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from taskflow.config import settings
from taskflow.core.exceptions import ForbiddenError, UnauthorizedError
from taskflow.crud.user import user as user_crud
from taskflow.database import get_db
from taskflow.models.user import User
from taskflow.services.container import Services
from taskflow.utils.security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_PREFIX}/auth/token")


async def resolve_user(db: AsyncSession, token: str) -> User:
    """User behind an access token."""
    credentials_exception = UnauthorizedError("Could not validate credentials")

    try:
        payload = decode_token(token)
    except ValueError:
        raise credentials_exception

    user_id: Optional[str] = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        raise credentials_exception
    try:
        user_obj = await user_crud.get(db, UUID(user_id))
    except ValueError:
        raise credentials_exception
    if user_obj is None:
        raise credentials_exception
    return user_obj


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT token."""
    return await resolve_user(db, token)


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get current active user."""
    if not current_user.is_active:
        raise ForbiddenError("User is inactive")
    return current_user


def get_services(connection: HTTPConnection) -> Services:
    """Services created in the application lifespan."""
    return connection.app.state.services
