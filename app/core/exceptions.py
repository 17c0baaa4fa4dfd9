"""Custom exceptions."""
from typing import Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Resource not found exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail or "Resource not found")


class UnauthorizedError(HTTPException):
    """Unauthorized exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail or "Not authenticated")


class ForbiddenError(HTTPException):
    """Forbidden exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail or "Permission denied")


class AccessDeniedError(ForbiddenError):
    """Caller has no right to see or change the requested resource."""


class ValidationError(HTTPException):
    """Validation exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail or "Validation error")


class ConflictError(HTTPException):
    """Conflict exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail or "Resource conflict")


class NotConfiguredError(NotFoundError):
    """No Jira integration has been set up for the project."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or "Jira integration not configured for this project")


class InvalidStatusError(HTTPException):
    """Status text could not be mapped to a canonical task status."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidTransitionError(HTTPException):
    """Requested status change would move a task backwards."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
