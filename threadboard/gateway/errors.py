"""API error types and handlers.

Each error is an ``HTTPException`` so FastAPI renders it as
``{"detail": ...}`` with the matching status code.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from threadboard.db.errors import StorageError, StorageErrorKind

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Not allowed") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class StorageFailure(HTTPException):
    """500 carrying the message of the underlying storage failure."""

    def __init__(self, action: str, error: StorageError) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {error.message}",
        )
        self.kind = error.kind


USER_TAKEN_DETAIL = "This username/email is already taken."


def user_write_failure(action: str, error: StorageError) -> HTTPException:
    """Map a failed user insert or update to an HTTP error.

    A unique-constraint violation means another request claimed the
    username or email after the availability check, so it is a 409.
    """
    if error.kind == StorageErrorKind.CONSTRAINT:
        logger.info(f"Unique constraint hit while trying to {action}: {error.message}")
        return ConflictError(USER_TAKEN_DETAIL)
    return StorageFailure(action, error)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Rejected request body for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Answer request validation failures with 400 instead of FastAPI's 422."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
