"""
Error types and the handlers that turn them into JSON responses.

Handlers raise one of the AppError subclasses below. They are HTTPExceptions,
so FastAPI renders them as ``{"detail": message}`` with the matching status
code. ``install_error_handlers`` adds translations for the errors that are not
raised on purpose: request validation failures, database integrity errors, and
anything unexpected.
"""

import logging
from typing import Optional, Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from config import get_settings

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Operational error: expected, and safe to show to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class Internal(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        # loc looks like ("body", "assignedTo") or ("query", "status")
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return f"Invalid input data. {'. '.join(messages)}"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation_errors(exc)
    logger.info(f"Rejected invalid input on {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.info(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Duplicate field value. Please use another value!"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Programming or unknown error.

    Always logged with a traceback. The caller only sees the real message
    outside production-like environments.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    if get_settings().is_production_like:
        content = {"detail": "Something went wrong!"}
    else:
        content = {"detail": str(exc) or "Something went wrong!", "error": type(exc).__name__}

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
