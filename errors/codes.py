"""
Error code catalog for the Driver Location Service.

Clients see two classes of failure: validation failures (400) and
operational failures (500). Operational failures keep a distinct code
for logging even though they share a status.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used in the application.
    """

    # Validation errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Request parameters failed validation (HTTP 400)"""

    # Operational errors (5xx)
    DRIVER_NOT_FOUND = "DRIVER_NOT_FOUND"
    """No location record exists for the driver (HTTP 500)"""

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    """Document store connection or operation failed (HTTP 500)"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.DRIVER_NOT_FOUND: 500,
    ErrorCode.STORE_UNAVAILABLE: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
