"""Password hashing and JWT helpers."""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt

from taskflow.config import settings
from taskflow.utils.timeutils import utcnow


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def _encode(data: Dict[str, Any], token_type: str, expires_at: datetime) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": expires_at, "iat": utcnow(), "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a short-lived access token."""
    expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, "access", utcnow() + expires_delta)


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Create a long-lived refresh token."""
    return _encode(data, "refresh", utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a token.

    Raises ValueError for expired, malformed or wrongly signed tokens.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as exc:
        raise ValueError(f"Invalid token: {exc}") from exc
