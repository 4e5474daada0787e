from __future__ import annotations

from fastapi import APIRouter, Depends

from perfsim.services.metrics_service import get_metrics
from perfsim.services.simulation_service import SimulationService, get_simulation_service

router = APIRouter(tags=["Metrics"])


@router.get("/api/metrics")
def metrics_snapshot(service: SimulationService = Depends(get_simulation_service)) -> dict:
    """Process CPU, memory and simulation snapshot polled by dashboards."""

    return get_metrics(service)
