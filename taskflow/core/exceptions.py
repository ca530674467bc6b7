"""Custom exceptions.

Every error carries a stable ``kind`` next to its message so callers can
match on the failure category without parsing text.
"""
from typing import Optional
from fastapi import HTTPException, status


class TaskflowError(HTTPException):
    """Base class for typed failures surfaced to the route layer."""

    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = self.default_detail
        super().__init__(status_code=type(self).status_code, detail=detail)

    @property
    def message(self) -> str:
        return self.detail


class NotFoundError(TaskflowError):
    """Resource not found exception."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class UnauthorizedError(TaskflowError):
    """Unauthorized exception."""

    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(TaskflowError):
    """Access denied exception."""

    kind = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class ValidationError(TaskflowError):
    """Validation exception."""

    kind = "validation_failed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation error"


class ConflictError(TaskflowError):
    """Conflict exception."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource conflict"
