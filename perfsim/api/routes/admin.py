from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from perfsim.core.config import APP_NAME, APP_VERSION, settings
from perfsim.services.simulation_service import SimulationService, get_simulation_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/status")
def admin_status(service: SimulationService = Depends(get_simulation_service)) -> dict:
    """Configuration summary and current simulation load."""

    return {
        "app": APP_NAME,
        "version": APP_VERSION,
        "environment": settings.app_env,
        "config": settings.public_config(),
        "activeSimulations": len(service.active()),
        "totalAllocatedMb": service.allocated_mb(),
    }


@router.get("/events")
def admin_events(
    limit: int = Query(50, ge=1, le=1000),
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Most recent simulation events, newest first."""

    entries = service.event_log.recent(limit)
    return {
        "events": [entry.to_dict() for entry in entries],
        "count": len(entries),
        "sequence": service.event_log.sequence,
    }
