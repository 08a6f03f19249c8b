"""
Middleware components for the Driver Location Service.
"""

from middleware.request_id import (
    RequestIDMiddleware,
    request_id_var,
    get_request_id,
    REQUEST_ID_HEADER,
)

__all__ = [
    "RequestIDMiddleware",
    "request_id_var",
    "get_request_id",
    "REQUEST_ID_HEADER",
]
