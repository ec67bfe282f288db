"""
Error taxonomy for organization role management.

Each error is an HTTPException so single-item endpoints can let it propagate
and FastAPI renders it as ``{"detail": message}``. The bulk engine reads the
same ``detail`` into per-item outcomes.
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """User, organization or role does not exist."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Duplicate role name on create."""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class BadRequestError(HTTPException):
    """Operation violates a domain rule."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotAuthorizedError(HTTPException):
    """Permission denied by the authorization guard."""

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def error_message(exc: Exception) -> str:
    """Message text for an exception, preferring HTTPException.detail."""
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or exc.__class__.__name__
