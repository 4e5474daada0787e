"""Request input validation for simulation endpoints.

Every validator follows a validate-or-fail contract: it returns a typed,
bounds-checked value or raises ValidationError, which the global handler
turns into a 400 response.

Required, user-meaningful fields fail loudly with machine-readable details.
Operational safety knobs (blocking worker count, slow request pattern)
fall back to a safe default instead of failing.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping

from perfsim.core.config import ValidationBounds, get_validation_bounds
from perfsim.core.errors import RangeErrorDetails, ValidationError

_INTEGER_RE = re.compile(r"-?[0-9]+")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)

BLOCKING_PATTERNS = ("sleep", "cpu_intensive", "file_io")
DEFAULT_BLOCKING_PATTERN = "sleep"


@dataclass(frozen=True)
class CpuStressParams:
    target_load_percent: int
    duration_seconds: int


@dataclass(frozen=True)
class MemoryPressureParams:
    size_mb: int


@dataclass(frozen=True)
class BlockingParams:
    duration_seconds: int
    concurrent_workers: int


@dataclass(frozen=True)
class SlowRequestParams:
    delay_seconds: int
    blocking_pattern: str


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def validate_integer(value: Any, field_name: str, min_value: int, max_value: int) -> int:
    """Coerce a raw value to an integer within an inclusive range.

    Accepts ints, floats (truncated toward zero) and optionally signed
    digit strings.

    Args:
        value: Raw input value (JSON scalar or query string).
        field_name: Field name used in error messages.
        min_value: Inclusive lower bound.
        max_value: Inclusive upper bound.

    Returns:
        The coerced integer.

    Raises:
        ValidationError: If the value is missing, not numeric or out of range.
    """

    if _is_missing(value):
        raise ValidationError(f"{field_name} is required")

    if isinstance(value, str):
        if not _INTEGER_RE.fullmatch(value):
            raise ValidationError(f"{field_name} must be a number")
        value = int(value)

    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number")

    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field_name} must be a number")

    int_value = int(value)

    if int_value < min_value or int_value > max_value:
        details: RangeErrorDetails = {
            "field": field_name,
            "min": min_value,
            "max": max_value,
            "received": int_value,
        }
        raise ValidationError(f"{field_name} must be between {min_value} and {max_value}", details)

    return int_value


def validate_optional_integer(
    value: Any,
    field_name: str,
    min_value: int,
    max_value: int,
    default: int,
) -> int:
    """Like validate_integer, but returns ``default`` when the value is absent."""

    if _is_missing(value):
        return default
    return validate_integer(value, field_name, min_value, max_value)


def _require_mapping(data: Any, message: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(message)
    return data


def validate_cpu_stress_params(
    data: Any, bounds: ValidationBounds | None = None
) -> CpuStressParams:
    """Validate the body of a CPU stress request.

    Expects ``targetLoadPercent`` and ``durationSeconds``.
    """

    payload = _require_mapping(data, "Invalid CPU stress parameters")
    limits = bounds or get_validation_bounds()

    return CpuStressParams(
        target_load_percent=validate_integer(
            payload.get("targetLoadPercent"),
            "targetLoadPercent",
            limits.min_cpu_load_percent,
            limits.max_cpu_load_percent,
        ),
        duration_seconds=validate_integer(
            payload.get("durationSeconds"),
            "durationSeconds",
            limits.min_duration_seconds,
            limits.max_duration_seconds,
        ),
    )


def validate_memory_pressure_params(
    data: Any, bounds: ValidationBounds | None = None
) -> MemoryPressureParams:
    """Validate the body of a memory pressure request (``sizeMb``)."""

    payload = _require_mapping(data, "Invalid memory pressure parameters")
    limits = bounds or get_validation_bounds()

    return MemoryPressureParams(
        size_mb=validate_integer(
            payload.get("sizeMb"), "sizeMb", limits.min_memory_mb, limits.max_memory_mb
        ),
    )


def _lenient_number(value: Any) -> float | None:
    """Interpret a value as a finite number, or return None."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        # float() accepts "1_000"; digit separators are not numbers here
        if "_" in value:
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def validate_blocking_params(
    data: Any, bounds: ValidationBounds | None = None
) -> BlockingParams:
    """Validate the body of a request-blocking simulation.

    ``durationSeconds`` is strict. ``concurrentWorkers`` never fails: a
    missing, non-numeric or < 1 value becomes the configured default, and
    the result is capped at the configured maximum.
    """

    payload = _require_mapping(data, "Invalid blocking parameters")
    limits = bounds or get_validation_bounds()

    workers = _lenient_number(payload.get("concurrentWorkers"))
    if workers is None or workers < 1:
        workers = limits.default_blocking_workers
    concurrent_workers = min(int(workers), limits.max_blocking_workers)

    return BlockingParams(
        duration_seconds=validate_integer(
            payload.get("durationSeconds"),
            "durationSeconds",
            limits.min_duration_seconds,
            limits.max_duration_seconds,
        ),
        concurrent_workers=concurrent_workers,
    )


def validate_slow_request_params(
    data: Any, bounds: ValidationBounds | None = None
) -> SlowRequestParams:
    """Validate slow request query parameters.

    ``delaySeconds`` is strict; an unknown or missing ``blockingPattern``
    silently becomes ``sleep``.
    """

    payload = _require_mapping(data, "Invalid slow request parameters")
    limits = bounds or get_validation_bounds()

    pattern = payload.get("blockingPattern")
    if isinstance(pattern, str):
        pattern = pattern.strip().lower()
    if pattern not in BLOCKING_PATTERNS:
        pattern = DEFAULT_BLOCKING_PATTERN

    return SlowRequestParams(
        delay_seconds=validate_integer(
            payload.get("delaySeconds"),
            "delaySeconds",
            limits.min_duration_seconds,
            limits.max_duration_seconds,
        ),
        blocking_pattern=pattern,
    )


def validate_uuid(value: Any, field_name: str) -> str:
    """Check that a value is a canonical 8-4-4-4-12 hex UUID string.

    Format check only; existence is the caller's concern.
    """

    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if not _UUID_RE.fullmatch(value):
        raise ValidationError(f"{field_name} must be a valid UUID")
    return value
