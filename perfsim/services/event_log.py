"""In-memory event log of simulation lifecycle events.

A bounded ring buffer: once capacity is reached the oldest entries are
discarded. Thread-safe, per-process only.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from perfsim.utils.timestamps import format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventEntry:
    """A single event log entry."""

    sequence: int
    timestamp: str
    level: str
    event: str
    message: str
    simulation_id: str | None = None
    simulation_type: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.sequence,
            "timestamp": self.timestamp,
            "level": self.level,
            "event": self.event,
            "message": self.message,
            "simulationId": self.simulation_id,
            "simulationType": self.simulation_type,
            "details": self.details,
        }


class EventLog:
    """Thread-safe ring buffer of EventEntry values.

    Attributes:
        max_entries: Buffer capacity.
    """

    def __init__(self, max_entries: int = 100) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: deque[EventEntry] = deque(maxlen=max_entries)
        self._sequence = 0
        self._lock = threading.RLock()

    def log(
        self,
        level: str,
        event: str,
        message: str,
        simulation_id: str | None = None,
        simulation_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> EventEntry:
        """Append an entry and return it."""

        with self._lock:
            self._sequence += 1
            entry = EventEntry(
                sequence=self._sequence,
                timestamp=format_timestamp(),
                level=level,
                event=event,
                message=message,
                simulation_id=simulation_id,
                simulation_type=simulation_type,
                details=dict(details or {}),
            )
            self._entries.append(entry)

        logger.debug(
            "event_log.append",
            extra={"event": event, "sequence": entry.sequence, "level": level},
        )
        return entry

    def info(self, event: str, message: str, *args: Any, **kwargs: Any) -> EventEntry:
        return self.log("info", event, message, *args, **kwargs)

    def warn(self, event: str, message: str, *args: Any, **kwargs: Any) -> EventEntry:
        return self.log("warn", event, message, *args, **kwargs)

    def error(self, event: str, message: str, *args: Any, **kwargs: Any) -> EventEntry:
        return self.log("error", event, message, *args, **kwargs)

    def success(self, event: str, message: str, *args: Any, **kwargs: Any) -> EventEntry:
        return self.log("success", event, message, *args, **kwargs)

    def entries(self) -> list[EventEntry]:
        """Return all retained entries, oldest first."""

        with self._lock:
            return list(self._entries)

    def recent(self, limit: int = 50) -> list[EventEntry]:
        """Return up to ``limit`` most recent entries, newest first."""

        if limit <= 0:
            return []
        with self._lock:
            return list(reversed(self._entries))[:limit]

    @property
    def sequence(self) -> int:
        return self._sequence

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
