"""Global error translation for consistent JSON error responses.

Every failure that leaves a route, typed or not, is converted here into an
HTTP status and a JSON body of the shape::

    {"error": "<kind>", "message": "<text>", "details": {...}}

Design:
- AppError (ValidationError, NotFoundError, ...) -> its own status and fields
- Malformed JSON body -> 400 "Bad Request"
- Routing errors (unknown path, wrong method) -> their HTTP status
- Anything else -> 500; outside production the response also carries the
  exception class, real message, file and line
"""

from __future__ import annotations

import json
import logging
import traceback
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from perfsim.core.config import settings
from perfsim.core.errors import AppError, ErrorKind, WarningFault

logger = logging.getLogger(__name__)

MALFORMED_BODY_MESSAGE = "Invalid JSON in request body"
GENERIC_ERROR_MESSAGE = "An unexpected error occurred"
ROUTE_NOT_FOUND_MESSAGE = "The requested resource does not exist"


class PrettyJSONResponse(JSONResponse):
    """JSON response rendered indented, with forward slashes left unescaped.

    Values json cannot encode (datetimes in error details, for example) are
    rendered with str().
    """

    def render(self, content: Any) -> bytes:
        return json.dumps(content, indent=4, default=str).encode("utf-8")


def _fault_location(exc: BaseException) -> tuple[str | None, int | None]:
    """Return the file and line where an unexpected fault originated."""

    if isinstance(exc, WarningFault):
        return exc.filename, exc.lineno
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return None, None
    origin = frames[-1]
    return origin.filename, origin.lineno


def translate_exception(exc: BaseException, *, production: bool) -> tuple[int, dict[str, Any]]:
    """Map any exception to an HTTP status code and error body.

    Args:
        exc: The failure that terminated the request.
        production: Redact internal details of unexpected faults when True.

    Returns:
        Tuple of (status_code, body).
    """

    match exc:
        case AppError(status_code=status_code, error_type=error_type, message=message):
            body: dict[str, Any] = {"error": error_type, "message": message}
            if exc.details is not None:
                body["details"] = dict(exc.details)
            return status_code, body

        case json.JSONDecodeError():
            return ErrorKind.BAD_REQUEST.status_code, {
                "error": ErrorKind.BAD_REQUEST.value,
                "message": MALFORMED_BODY_MESSAGE,
            }

        case RequestValidationError():
            return ErrorKind.VALIDATION.status_code, {
                "error": ErrorKind.VALIDATION.value,
                "message": "Invalid request parameters",
                "details": {"errors": jsonable_errors(exc)},
            }

        case StarletteHTTPException(status_code=404):
            return ErrorKind.ROUTE_NOT_FOUND.status_code, {
                "error": ErrorKind.ROUTE_NOT_FOUND.value,
                "message": ROUTE_NOT_FOUND_MESSAGE,
            }

        case StarletteHTTPException(status_code=status_code, detail=detail) if status_code >= 400:
            return status_code, {
                "error": HTTPStatus(status_code).phrase,
                "message": str(detail),
            }

    if production:
        return ErrorKind.INTERNAL.status_code, {
            "error": ErrorKind.INTERNAL.value,
            "message": GENERIC_ERROR_MESSAGE,
        }

    body = {"error": type(exc).__name__, "message": str(exc)}
    file, line = _fault_location(exc)
    if file is not None:
        body["file"] = file
        body["line"] = line
    return ErrorKind.INTERNAL.status_code, body


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Reduce pydantic error entries to their JSON-safe fields."""

    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def error_response(exc: BaseException) -> PrettyJSONResponse:
    """Log a failure once and render it as the JSON error contract.

    This is the only place error responses are produced.
    """

    production = settings.is_production
    status_code, body = translate_exception(exc, production=production)

    logger.error(f"[ERROR] {exc}", extra={"status_code": status_code})
    if not production:
        logger.error("".join(traceback.format_exception(exc)))

    headers = exc.headers if isinstance(exc, StarletteHTTPException) else None
    return PrettyJSONResponse(status_code=status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: Exception) -> Response:
    """FastAPI exception handler delegating to error_response()."""

    return error_response(exc)


async def error_boundary_middleware(request: Request, call_next) -> Response:
    """Convert any exception escaping the route stack into an error response.

    Sits inside the request logger so the logged status is always the one
    the client receives.
    """

    try:
        return await call_next(request)
    except Exception as exc:
        return error_response(exc)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers and the error boundary with a FastAPI app.

    Must be called before the request logging middleware is added, so the
    boundary ends up inside it.

    Args:
        app: FastAPI application instance.
    """

    for exc_class in (
        AppError,
        json.JSONDecodeError,
        RequestValidationError,
        StarletteHTTPException,
        Exception,
    ):
        app.add_exception_handler(exc_class, app_error_handler)

    app.middleware("http")(error_boundary_middleware)
