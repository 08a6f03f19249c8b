"""
Exception handlers for the Driver Location Service.

This module provides FastAPI exception handlers that convert exceptions
to structured JSON error responses. Every error body carries a plain
``message`` alongside the error code and request ID.
"""

import logging
import traceback
import uuid
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors.codes import ErrorCode
from errors.exceptions import AppException

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """
    Structured error response model.
    """
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None
    request_id: str


def get_request_id(request: Request) -> str:
    """
    Get the request ID from the request state or generate a new one.

    Args:
        request: The FastAPI request object

    Returns:
        The request ID string
    """
    if hasattr(request.state, "request_id"):
        return request.state.request_id

    return str(uuid.uuid4())


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle known application exceptions and convert to structured response.

    Args:
        request: The FastAPI request object
        exc: The AppException that was raised

    Returns:
        JSONResponse with structured error format
    """
    request_id = get_request_id(request)

    logger.warning(
        "Application error occurred",
        extra={
            "extra_data": {
                "error_code": exc.error_code.value,
                "error_message": exc.message,
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path,
                "method": request.method,
            }
        }
    )

    error_response = ErrorResponse(
        error_code=exc.error_code.value,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render FastAPI's own parameter validation failures as 400 responses.

    Without this, FastAPI answers with 422 and a body that lacks ``message``.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "error": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return await handle_app_exception(
        request,
        AppException(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="Wrong fields, Update Failed",
            details={"validation_errors": errors},
        ),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions safely without exposing internal details.

    The full stack trace is logged; the client gets a generic 500.

    Args:
        request: The FastAPI request object
        exc: The unexpected exception that was raised

    Returns:
        JSONResponse with generic error message
    """
    request_id = get_request_id(request)

    logger.error(
        "Unexpected error occurred",
        extra={
            "extra_data": {
                "error_code": ErrorCode.INTERNAL_ERROR.value,
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "stack_trace": traceback.format_exc(),
            }
        },
        exc_info=True,
    )

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred. Please try again later.",
        details=None,
        request_id=request_id,
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(exclude_none=True),
    )


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)

    logger.info("Exception handlers registered successfully")
