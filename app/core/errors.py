"""
DocuMind Error Handling
Domain exceptions raised by the service layer and the FastAPI handlers that
turn them into JSON responses.

All errors return JSON with a `detail` field and a machine-readable `error` code.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for every error the API reports on purpose."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(AppError):
    """Entity missing, or not owned by the caller. The two are deliberately indistinguishable."""

    status_code = 404
    error = "not_found"


class ForbiddenError(AppError):
    status_code = 403
    error = "forbidden"


class ValidationError(AppError):
    """Malformed or inconsistent input."""

    status_code = 400
    error = "validation_error"


class DepthExceededError(ValidationError):
    error = "depth_exceeded"


class ExternalServiceError(AppError):
    """Generative model or extraction library failed and no fallback applies."""

    status_code = 500
    error = "external_service_error"


class GenerationError(AppError):
    """AI output could not be parsed into the expected shape."""

    status_code = 500
    error = "generation_error"


def error_body(exc: AppError) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": exc.message, "error": exc.error}
    if exc.details:
        body["details"] = exc.details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": "internal_error"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain exception handlers on the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
