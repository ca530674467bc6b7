"""Authentication schemas."""
from pydantic import EmailStr
from taskflow.schemas.common import CamelModel
from taskflow.schemas.user import UserResponse


class LoginRequest(CamelModel):
    """Login credentials."""

    email: EmailStr
    password: str


class TokenResponse(CamelModel):
    """Token pair issued on login/registration."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RefreshTokenRequest(CamelModel):
    """Refresh token request."""

    refresh_token: str


class RefreshTokenResponse(CamelModel):
    """Refreshed access token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
