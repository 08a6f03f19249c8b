"""
Request ID middleware for request correlation.

Each request gets an ID taken from the X-Request-ID header or freshly
generated. The ID is echoed back on the response and attached to every
log line written while the request is being handled.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Request ID for the request currently being handled
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that generates or extracts a request ID for each request.

    The request ID is:
    1. Extracted from the X-Request-ID header if present
    2. Generated as a new UUID if not present
    3. Stored in request.state for use by error handlers
    4. Stored in a context variable for use by logging
    5. Added to the response headers

    Every completed request is also logged with its status and duration.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"extra_data": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                }}
            )
            return response
        finally:
            # Avoid leaking the ID into the next request on this context
            request_id_var.reset(token)


def get_request_id() -> str:
    """
    Get the current request ID from the context variable.

    Returns:
        The current request ID, or empty string if not in a request context
    """
    return request_id_var.get()
