"""Translate service errors into HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from yappin.core.errors import (
    AuthorizationError,
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
    YappinError,
)
from yappin.store.errors import InvalidPathError

ERROR_STATUS: list[tuple[type[YappinError], int]] = [
    (NotAuthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
]


def status_for(exc: YappinError) -> int:
    """Return the HTTP status code for a service error."""
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def yappin_error_handler(request: Request, exc: YappinError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": exc.detail})


async def invalid_path_handler(request: Request, exc: InvalidPathError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid identifier"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the service error handlers to ``app``."""
    app.add_exception_handler(YappinError, yappin_error_handler)
    app.add_exception_handler(InvalidPathError, invalid_path_handler)
