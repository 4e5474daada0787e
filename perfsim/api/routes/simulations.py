"""Simulation endpoints.

Handlers validate raw input, delegate to the simulation service and return
plain JSON payloads. They never build error responses themselves: every
failure propagates to the global error handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from perfsim.core.request_body import read_json_body
from perfsim.core.validation import (
    validate_blocking_params,
    validate_cpu_stress_params,
    validate_memory_pressure_params,
    validate_slow_request_params,
    validate_uuid,
)
from perfsim.services.simulation_service import SimulationService, get_simulation_service
from perfsim.services.simulation_tracker import SimulationType

router = APIRouter(prefix="/api/simulations", tags=["Simulations"])


@router.get("")
def list_simulations(service: SimulationService = Depends(get_simulation_service)) -> dict:
    simulations = service.active()
    return {
        "simulations": [sim.to_dict() for sim in simulations],
        "count": len(simulations),
    }


@router.post("/cpu", status_code=status.HTTP_201_CREATED)
async def start_cpu_stress(
    request: Request,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Start a CPU stress simulation (body: targetLoadPercent, durationSeconds)."""

    params = validate_cpu_stress_params(await read_json_body(request))
    simulation = service.start_cpu_stress(params)
    return {
        "id": simulation.id,
        "type": simulation.type.value,
        "message": (
            f"CPU stress simulation started at {params.target_load_percent}% "
            f"for {params.duration_seconds}s"
        ),
        "parameters": simulation.parameters,
        "scheduledEndAt": simulation.scheduled_end_at,
    }


@router.get("/cpu")
def list_cpu_stress(service: SimulationService = Depends(get_simulation_service)) -> dict:
    simulations = service.active(SimulationType.CPU_STRESS)
    return {
        "simulations": [sim.to_dict() for sim in simulations],
        "count": len(simulations),
    }


@router.delete("/cpu/{simulation_id}")
def stop_cpu_stress(
    simulation_id: str,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Stop a running CPU stress simulation. 404 if it is unknown or not active."""

    validate_uuid(simulation_id, "id")
    stopped = service.stop_cpu_stress(simulation_id)
    return {
        "id": stopped.id,
        "type": stopped.type.value,
        "message": "CPU stress simulation stopped",
        "status": stopped.status.value,
        "stoppedAt": stopped.stopped_at,
    }


@router.post("/memory", status_code=status.HTTP_201_CREATED)
async def allocate_memory(
    request: Request,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Allocate memory to simulate memory pressure (body: sizeMb)."""

    params = validate_memory_pressure_params(await read_json_body(request))
    simulation = await run_in_threadpool(service.allocate_memory, params)
    return {
        "id": simulation.id,
        "type": simulation.type.value,
        "message": f"Allocated {params.size_mb}MB of memory",
        "parameters": simulation.parameters,
        "totalAllocatedMb": service.allocated_mb(),
    }


@router.get("/memory")
def list_memory_allocations(service: SimulationService = Depends(get_simulation_service)) -> dict:
    allocations = service.active(SimulationType.MEMORY_PRESSURE)
    return {
        "allocations": [sim.to_dict() for sim in allocations],
        "count": len(allocations),
        "totalAllocatedMb": service.allocated_mb(),
    }


@router.delete("/memory/{simulation_id}")
def release_memory(
    simulation_id: str,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Release a memory allocation. Idempotent: unknown ids succeed too."""

    validate_uuid(simulation_id, "id")
    simulation, released_mb = service.release_memory(simulation_id)

    if simulation is None:
        return {
            "id": simulation_id,
            "type": SimulationType.MEMORY_PRESSURE.value,
            "message": "Memory allocation already released or not found",
            "status": "STOPPED",
            "totalAllocatedMb": service.allocated_mb(),
        }

    return {
        "id": simulation.id,
        "type": simulation.type.value,
        "message": f"Released {released_mb}MB of memory" if released_mb > 0 else "Released memory allocation",
        "status": simulation.status.value,
        "stoppedAt": simulation.stopped_at,
        "totalAllocatedMb": service.allocated_mb(),
    }


@router.post("/blocking")
async def block_request_thread(
    request: Request,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Block for the requested duration before responding.

    Body: durationSeconds (required), concurrentWorkers (optional safety knob).
    """

    params = validate_blocking_params(await read_json_body(request))
    simulation = await run_in_threadpool(service.block, params)
    return {
        "id": simulation.id,
        "type": simulation.type.value,
        "message": f"Request thread was blocked for {params.duration_seconds}s",
        "status": simulation.status.value,
        "startedAt": simulation.started_at,
        "stoppedAt": simulation.stopped_at,
        "concurrentWorkers": params.concurrent_workers,
    }


@router.get("/slow")
def slow_request(
    request: Request,
    service: SimulationService = Depends(get_simulation_service),
) -> dict:
    """Respond after an artificial delay (query: delaySeconds, blockingPattern)."""

    params = validate_slow_request_params(dict(request.query_params))
    simulation = service.slow_request(params)
    return {
        "id": simulation.id,
        "type": simulation.type.value,
        "message": (
            f"Response delayed by {params.delay_seconds}s "
            f"using {params.blocking_pattern} pattern"
        ),
        "status": simulation.status.value,
        "requestedDelaySeconds": params.delay_seconds,
        "blockingPattern": params.blocking_pattern,
        "startedAt": simulation.started_at,
        "stoppedAt": simulation.stopped_at,
    }
