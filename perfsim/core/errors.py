"""Application-level exception types.

Every deliberate failure raised by validators, services and routes is an
AppError carrying its own HTTP status and a stable, machine-readable kind.
The global handler renders them verbatim; anything else is treated as an
unexpected fault.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, TypedDict


class ErrorKind(str, Enum):
    """Closed set of machine-readable error kinds emitted by the API."""

    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFoundError"
    BAD_REQUEST = "Bad Request"
    ROUTE_NOT_FOUND = "Not Found"
    INTERNAL = "Internal Server Error"

    @property
    def status_code(self) -> int:
        return _KIND_STATUS[self]


_KIND_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.ROUTE_NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class RangeErrorDetails(TypedDict):
    """Details attached to an out-of-range numeric field."""

    field: str
    min: int
    max: int
    received: int


ErrorDetails = Mapping[str, Any]


@dataclass(eq=False)
class AppError(Exception):
    """Base error for deliberate, client-facing failures.

    Attributes:
        status_code: HTTP status (always 4xx or 5xx).
        message: Human-readable error message.
        error_type: Stable, machine-readable error kind.
        details: Optional structured context returned to the client.
    """

    status_code: int
    message: str
    error_type: str = "AppError"
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        if not 400 <= self.status_code <= 599:
            raise ValueError(f"AppError status must be 4xx/5xx, got {self.status_code}")
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when request input fails validation (HTTP 400)."""

    def __init__(self, message: str, details: ErrorDetails | None = None) -> None:
        super().__init__(
            status_code=ErrorKind.VALIDATION.status_code,
            message=message,
            error_type=ErrorKind.VALIDATION.value,
            details=details,
        )


class NotFoundError(AppError):
    """Raised when a referenced resource does not exist (HTTP 404)."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            status_code=ErrorKind.NOT_FOUND.status_code,
            message=message,
            error_type=ErrorKind.NOT_FOUND.value,
        )


class WarningFault(Exception):
    """A runtime warning promoted to a request-terminating fault.

    Attributes:
        category: Warning class that was emitted.
        filename: Source file that emitted the warning.
        lineno: Line number of the warn() call site.
    """

    def __init__(self, message: str, category: type[Warning], filename: str, lineno: int) -> None:
        super().__init__(message)
        self.category = category
        self.filename = filename
        self.lineno = lineno
