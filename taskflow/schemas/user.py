"""User schemas."""
from typing import Optional
from uuid import UUID
from datetime import datetime
from pydantic import EmailStr, field_validator
from taskflow.schemas.common import CamelModel


class UserCreate(CamelModel):
    """Registration payload."""

    email: EmailStr
    password: str
    first_name: str
    last_name: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if (
            len(value) < 8
            or not any(c.islower() for c in value)
            or not any(c.isupper() for c in value)
            or not any(c.isdigit() for c in value)
        ):
            raise ValueError(
                "Password must be at least 8 characters with uppercase, lowercase, and number"
            )
        return value


class UserUpdate(CamelModel):
    """Profile update payload."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserSummary(CamelModel):
    """Short user reference embedded in other payloads."""

    id: UUID
    email: str
    first_name: str
    last_name: str


class UserResponse(UserSummary):
    """User response schema."""

    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserStats(CamelModel):
    """Per-user task counters."""

    created_tasks: int
    assigned_tasks: int
    completed_tasks: int
