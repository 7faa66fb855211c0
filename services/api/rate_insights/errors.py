"""Service exceptions and their HTTP handlers."""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class InsightServiceError(Exception):
    """Base error surfaced to clients as a failed request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    response_status = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RateFetchError(InsightServiceError):
    """External rate API transport, status or payload failure."""


class StorageError(InsightServiceError):
    """Database failure while reading or writing."""


class UserCreationError(InsightServiceError):
    """User row rejected by the database (e.g. duplicate email)."""

    status_code = status.HTTP_400_BAD_REQUEST
    response_status = "fail"


def service_error_handler(request: Request, exc: InsightServiceError) -> JSONResponse:
    """Render a service error as a status envelope."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.response_status, "message": exc.message},
    )


def format_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic validation errors into one readable line."""
    parts = []
    for error in exc.errors():
        loc = [str(p) for p in error.get("loc", ()) if p != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {error.get('msg')}")
    return "; ".join(parts)


def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Validation and malformed JSON errors are client errors (400)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "status": "fail",
            "message": f"Validation error: {format_validation_errors(exc)}",
        },
    )


def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.

    Returns:
        500 error with sanitized error message
    """
    logger.error(
        f"Unhandled exception: {request.method} {request.url.path} - {str(exc)}",
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "message": "Internal server error",
        },
    )
