"""
Exception classes for the Driver Location Service.

This module provides the AppException class and convenience factory
functions for creating application-specific exceptions with proper
error codes and HTTP status codes.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all application-specific errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code to return
    - details: Optional additional context (e.g., field-level errors)

    Example:
        raise AppException(
            error_code=ErrorCode.VALIDATION_ERROR,
            message="Wrong fields, Update Failed",
            details={"lat": "Latitude must be between -90 and 90"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"AppException(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


# Convenience factory functions for common error types

def validation_error(
    message: str,
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a validation error exception."""
    return AppException(
        error_code=ErrorCode.VALIDATION_ERROR,
        message=message,
        details=details
    )


def driver_not_found(
    message: str = "Driver doesn't exist",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a driver not found exception."""
    return AppException(
        error_code=ErrorCode.DRIVER_NOT_FOUND,
        message=message,
        details=details
    )


def store_unavailable(
    message: str = "Database connection failed",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a document store unavailable exception."""
    return AppException(
        error_code=ErrorCode.STORE_UNAVAILABLE,
        message=message,
        details=details
    )


def operation_failed(message: str, cause: Exception) -> AppException:
    """
    Wrap any non-validation failure in a 500 carrying a fixed client message.

    The error code of an AppException cause is kept so logs still tell
    a missing driver apart from a store outage. Cause details are dropped.
    """
    error_code = cause.error_code if isinstance(cause, AppException) else ErrorCode.INTERNAL_ERROR
    return AppException(
        error_code=error_code,
        message=message,
        status_code=500,
    )
