"""Typed API failures.

Each class is an ``HTTPException`` so FastAPI maps it to its status code at the
boundary; callers only pick the category and the message.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """User, post, comment, report or notification is missing (or not visible to the caller)."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationError(HTTPException):
    """Malformed or out-of-range input, or a rejected self-action."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenError(HTTPException):
    """Role or ownership violation."""

    def __init__(self, detail: str = "You don't have permission to perform this action") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class BannedError(ForbiddenError):
    """Banned actor attempting a mutation."""

    def __init__(self, action: str = "perform this action") -> None:
        super().__init__(detail=f"You are banned and cannot {action}")


class ConflictError(HTTPException):
    """Duplicate report, duplicate email, or other unique-constraint clash."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
