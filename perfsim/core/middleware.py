"""HTTP middleware for request correlation and access logging.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request id, method and path in contextvars so every log line of
  the request carries them
- Writes exactly one access line once the final status code is known
- Echoes the request id and duration in response headers

Usage:
    app.middleware("http")(request_logging_middleware)

Register it after setup_exception_handlers() so it wraps the error
boundary and observes error responses too.
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from perfsim.core.config import settings
from perfsim.core.logging import clear_request_context, set_request_context
from perfsim.core.request_logger import log_request


async def request_logging_middleware(request: Request, call_next) -> Response:
    """Correlate, time and log a request.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with request id and duration headers.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_context(request_id, request.method, request.url.path)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        log_request(
            request.method,
            request.url.path,
            response.status_code,
            start,
            headers=request.headers,
            client_host=request.client.host if request.client else None,
        )
    finally:
        clear_request_context()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
