"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import UnauthorizedError
from taskflow.database import get_db
from taskflow.dependencies import get_current_active_user
from taskflow.models.user import User
from taskflow.schemas.auth import LoginRequest, RefreshTokenRequest, RefreshTokenResponse, TokenResponse
from taskflow.schemas.user import UserCreate, UserResponse
from taskflow.services.auth_service import AuthService

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(**AuthService.create_tokens(user), user=UserResponse.model_validate(user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Create an account and log it in."""
    new_user = await AuthService.register(db, data)
    return _token_response(new_user)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with email and password."""
    user_obj = await AuthService.authenticate_user(db, credentials.email, credentials.password)
    if not user_obj:
        raise UnauthorizedError("Invalid email or password")
    return _token_response(user_obj)


@router.post("/token", response_model=TokenResponse)
async def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """OAuth2 password flow; ``username`` is the email."""
    user_obj = await AuthService.authenticate_user(db, form_data.username, form_data.password)
    if not user_obj:
        raise UnauthorizedError("Invalid email or password")
    return _token_response(user_obj)


@router.post("/refresh", response_model=RefreshTokenResponse)
async def refresh_token(request: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """Refresh access token using refresh token."""
    tokens = await AuthService.refresh_access_token(db, request.refresh_token)
    return RefreshTokenResponse(**tokens)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """Get current authenticated user information."""
    return current_user
