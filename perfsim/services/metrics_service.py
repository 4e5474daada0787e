"""Point-in-time process and host metrics for dashboards.

Dashboards poll ``GET /api/metrics`` every ``METRICS_INTERVAL_MS``; each
call computes a fresh snapshot. Host readings come from ``/proc`` and
``os.getloadavg()`` where available and degrade to zero elsewhere.
"""

from __future__ import annotations

import os
import platform
import sys
import threading
import time
from pathlib import Path
from typing import Any

from perfsim.core.config import settings
from perfsim.services.simulation_service import SimulationService
from perfsim.services.simulation_tracker import SimulationType
from perfsim.utils.timestamps import format_timestamp

_MB = 1024 * 1024
_STARTED_AT = time.monotonic()

_MEMINFO = Path("/proc/meminfo")
_STATM = Path("/proc/self/statm")


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED_AT, 2)


def _load_average() -> tuple[float, float, float]:
    try:
        return os.getloadavg()
    except (AttributeError, OSError):
        return 0.0, 0.0, 0.0


def _resource_usage() -> dict[str, float]:
    """CPU seconds and peak RSS of this process. Unix only."""
    try:
        import resource
    except ImportError:
        return {}

    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is kilobytes on Linux, bytes on macOS
    peak_bytes = usage.ru_maxrss if sys.platform == "darwin" else usage.ru_maxrss * 1024
    return {
        "cpu_seconds": usage.ru_utime + usage.ru_stime,
        "peak_rss_mb": peak_bytes / _MB,
    }


def _current_rss_mb() -> float | None:
    try:
        resident_pages = int(_STATM.read_text().split()[1])
    except (OSError, IndexError, ValueError):
        return None
    return resident_pages * os.sysconf("SC_PAGE_SIZE") / _MB


def _total_system_mb() -> float:
    try:
        for line in _MEMINFO.read_text().splitlines():
            if line.startswith("MemTotal:"):
                return int(line.split()[1]) * 1024 / _MB
    except (OSError, IndexError, ValueError):
        pass
    return 0.0


def cpu_metrics() -> dict[str, Any]:
    load_1m, load_5m, load_15m = _load_average()
    cpu_count = os.cpu_count() or 1
    usage = _resource_usage()
    return {
        "usagePercent": round(min(100.0, load_1m / cpu_count * 100), 2),
        "loadAvg1m": round(load_1m, 2),
        "loadAvg5m": round(load_5m, 2),
        "loadAvg15m": round(load_15m, 2),
        "cpuCount": cpu_count,
        "processCpuSeconds": round(usage.get("cpu_seconds", 0.0), 2),
    }


def memory_metrics(service: SimulationService) -> dict[str, Any]:
    rss = _current_rss_mb()
    usage = _resource_usage()
    return {
        "rssMb": round(rss, 2) if rss is not None else None,
        "peakRssMb": round(usage.get("peak_rss_mb", 0.0), 2),
        "simulatedAllocatedMb": service.allocated_mb(),
        "totalSystemMb": round(_total_system_mb(), 2),
    }


def process_metrics() -> dict[str, Any]:
    return {
        "pid": os.getpid(),
        "runtime": f"Python {platform.python_version()}",
        "uptimeSeconds": uptime_seconds(),
        "threads": threading.active_count(),
    }


def get_metrics(service: SimulationService) -> dict[str, Any]:
    """Build the full metrics snapshot.

    Args:
        service: Source of simulation counts and simulated allocations.

    Returns:
        Dict with cpu, memory, process, simulations and requestBlocking sections.
    """

    active = service.active()
    by_type = {sim_type.value: 0 for sim_type in SimulationType}
    for simulation in active:
        by_type[simulation.type.value] += 1

    return {
        "timestamp": format_timestamp(),
        "pollIntervalMs": settings.server.metrics_interval_ms,
        "cpu": cpu_metrics(),
        "memory": memory_metrics(service),
        "process": process_metrics(),
        "simulations": {"active": len(active), "byType": by_type},
        "requestBlocking": {
            "activeBlockingSimulations": by_type[SimulationType.REQUEST_BLOCKING.value],
        },
    }
