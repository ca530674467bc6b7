"""Authentication service."""
import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import settings
from taskflow.core.exceptions import ConflictError, UnauthorizedError
from taskflow.crud.user import user as user_crud
from taskflow.models.user import User
from taskflow.schemas.user import UserCreate
from taskflow.utils.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from taskflow.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service."""

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> User:
        """Create an account; emails are unique case-insensitively."""
        if await user_crud.get_by_email(db, email=data.email):
            raise ConflictError("User with this email already exists")

        new_user = await user_crud.create(
            db,
            obj_in={
                "email": data.email.lower(),
                "password_hash": get_password_hash(data.password),
                "first_name": data.first_name.strip(),
                "last_name": data.last_name.strip(),
            },
        )
        logger.info("User registered: %s", new_user.email)
        return new_user

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate a user by email and password."""
        found = await user_crud.get_by_email(db, email=email)
        if not found or not found.is_active:
            return None
        if not verify_password(password, found.password_hash):
            return None

        found.last_login = utcnow()
        await db.commit()
        return found

    @staticmethod
    def create_tokens(user: User) -> dict:
        """Create access and refresh tokens for a user."""
        access_token = create_access_token(
            data={"sub": str(user.id), "email": user.email},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        refresh_token = create_refresh_token(data={"sub": str(user.id)})

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    @staticmethod
    async def refresh_access_token(db: AsyncSession, refresh_token: str) -> dict:
        """Refresh access token using refresh token."""
        try:
            payload = decode_token(refresh_token)
        except ValueError:
            raise UnauthorizedError("Invalid refresh token")

        if payload.get("type") != "refresh":
            raise UnauthorizedError("Invalid token type")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid token")

        try:
            found = await user_crud.get(db, UUID(user_id))
        except ValueError:
            raise UnauthorizedError("Invalid token")
        if not found or not found.is_active:
            raise UnauthorizedError("User not found or inactive")

        access_token = create_access_token(
            data={"sub": str(found.id), "email": found.email},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }
