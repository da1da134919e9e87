"""
Domain errors raised by Stash services.

They are HTTPExceptions so services can raise them directly and FastAPI
renders them as `{"detail": ...}` with the matching status code.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class StashError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail)


class ValidationError(StashError):
    status_code = status.HTTP_400_BAD_REQUEST


class StateError(ValidationError):
    """Operation not allowed in the entity's current state."""


class NotFoundError(StashError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientStockError(StashError):
    status_code = status.HTTP_409_CONFLICT


class ConflictError(StashError):
    status_code = status.HTTP_409_CONFLICT
