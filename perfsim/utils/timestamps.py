"""Timestamp formatting shared by logs and API payloads."""

from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T12:00:00.123Z.

    Args:
        moment: Aware datetime to format; defaults to now.

    Returns:
        Formatted timestamp string with a trailing "Z".
    """

    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_to_timestamp(seconds: float) -> str:
    """Format a UNIX epoch value with format_timestamp()."""

    return format_timestamp(datetime.fromtimestamp(seconds, tz=timezone.utc))
