"""Process logging: request correlation plus JSON or plain output.

Every record emitted while a request is in flight is stamped with that
request's id, method and path. Simulation code adds ``simulation_id`` /
``simulation_type`` and the error handler adds ``status_code``; both
formatters surface those fields first so a simulation can be followed
across its log lines.

Access lines from ``perfsim.access`` are already fully formatted and are
written verbatim by the plain formatter.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from perfsim.core.config import LogSettings, settings
from perfsim.utils.timestamps import format_timestamp

ACCESS_LOGGER = "perfsim.access"

# Promoted to the front of every formatted record, in this order
CORRELATION_FIELDS = (
    "request_id",
    "http_method",
    "http_path",
    "simulation_id",
    "simulation_type",
    "status_code",
)

# Attributes every LogRecord has; anything else was passed via ``extra``
_RECORD_ATTRS = frozenset(vars(LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    method: str | None = None
    path: str | None = None


_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def set_request_context(request_id: str, method: str | None = None, path: str | None = None) -> None:
    _request_context.set(RequestContext(request_id, method, path))


def get_request_id() -> str | None:
    context = _request_context.get()
    return context.request_id if context else None


def clear_request_context() -> None:
    _request_context.set(None)


def record_fields(record: LogRecord) -> dict[str, Any]:
    """Correlation fields first, then any other ``extra`` values."""

    extras = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}
    fields = {name: extras.pop(name) for name in CORRELATION_FIELDS if extras.get(name) is not None}
    fields.update(extras)
    return fields


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request's id, method and path."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        context = _request_context.get()
        if context is not None:
            if getattr(record, "request_id", None) is None:
                record.request_id = context.request_id
            if getattr(record, "http_method", None) is None:
                record.http_method = context.method
            if getattr(record, "http_path", None) is None:
                record.http_path = context.path
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; timestamps match the API's format."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        data: dict[str, Any] = {
            "timestamp": format_timestamp(datetime.fromtimestamp(record.created, tz=timezone.utc)),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(record_fields(record))
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class PlainFormatter(logging.Formatter):
    """Human-readable lines: ``[ts] LEVEL logger: message key=value ...``."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        if record.name == ACCESS_LOGGER:
            return record.getMessage()

        timestamp = format_timestamp(datetime.fromtimestamp(record.created, tz=timezone.utc))
        line = f"[{timestamp}] {record.levelname} {record.name}: {record.getMessage()}"
        pairs = " ".join(f"{k}={v}" for k, v in record_fields(record).items())
        if pairs:
            line = f"{line} {pairs}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/perfsim.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install the single root handler used by the whole process.

    Args:
        log_settings: Defaults to the global settings.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(PlainFormatter() if cfg.format.lower() == "plain" else JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # perfsim.access already writes one line per request
    logging.getLogger("uvicorn.access").propagate = False
