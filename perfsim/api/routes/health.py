from __future__ import annotations

import platform
import time

from fastapi import APIRouter

from perfsim.core.config import APP_VERSION
from perfsim.services.metrics_service import uptime_seconds

router = APIRouter(tags=["Health"])


@router.get("/api/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: Status, timestamp, process uptime, version and runtime.
    """

    return {
        "status": "healthy",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "uptime": uptime_seconds(),
        "version": APP_VERSION,
        "runtime": f"Python {platform.python_version()}",
    }


@router.get("/api/health/probe")
@router.get("/api/metrics/probe")
def probe() -> dict:
    """Ultra-lightweight heartbeat endpoint; the request logger keeps it quiet."""

    return {"ts": int(time.time() * 1000)}
