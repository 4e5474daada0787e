"""Simulation orchestration.

Takes already-validated parameters, records the simulation, hands the
resource work to a runner and reports lifecycle events. Referencing an
unknown simulation raises NotFoundError; runner failures propagate to the
global error handler after the simulation is marked FAILED.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict

from perfsim.adapters.simulation.base import AbstractSimulationRunner
from perfsim.adapters.simulation.threaded import ThreadedSimulationRunner
from perfsim.core.config import settings
from perfsim.core.errors import NotFoundError
from perfsim.core.validation import (
    BlockingParams,
    CpuStressParams,
    MemoryPressureParams,
    SlowRequestParams,
)
from perfsim.services.event_log import EventLog
from perfsim.services.simulation_tracker import (
    Simulation,
    SimulationStatus,
    SimulationTracker,
    SimulationType,
)

logger = logging.getLogger(__name__)


def _camel(params: object) -> dict[str, object]:
    """Dataclass params -> camelCase dict, as echoed back to clients."""

    def convert(name: str) -> str:
        head, *rest = name.split("_")
        return head + "".join(part.title() for part in rest)

    return {convert(key): value for key, value in asdict(params).items()}


class SimulationService:
    """Coordinates tracker, runner and event log for every simulation type."""

    def __init__(
        self,
        *,
        tracker: SimulationTracker,
        event_log: EventLog,
        runner: AbstractSimulationRunner,
    ) -> None:
        self.tracker = tracker
        self.event_log = event_log
        self.runner = runner

    # CPU stress

    def start_cpu_stress(self, params: CpuStressParams) -> Simulation:
        simulation = self.tracker.create(
            SimulationType.CPU_STRESS, _camel(params), params.duration_seconds
        )
        self.runner.start_cpu_stress(
            simulation.id, params.target_load_percent, params.duration_seconds
        )
        self.event_log.info(
            "SIMULATION_STARTED",
            f"CPU stress started at {params.target_load_percent}% for {params.duration_seconds}s",
            simulation.id,
            SimulationType.CPU_STRESS.value,
            _camel(params),
        )
        logger.info(
            "simulation.started",
            extra={"simulation_id": simulation.id, "simulation_type": simulation.type.value},
        )
        return simulation

    def stop_cpu_stress(self, simulation_id: str) -> Simulation:
        simulation = self.tracker.get(simulation_id)
        if simulation is None:
            raise NotFoundError("Simulation not found")
        if simulation.type is not SimulationType.CPU_STRESS:
            raise NotFoundError("Simulation not found (not a CPU stress simulation)")
        if simulation.status is not SimulationStatus.ACTIVE:
            raise NotFoundError("Simulation is not active")

        self.runner.stop_cpu_stress(simulation_id)
        stopped = self.tracker.stop(simulation_id)
        if stopped is None:
            raise NotFoundError("Failed to stop simulation")

        self.event_log.info(
            "SIMULATION_STOPPED",
            "CPU stress stopped by user",
            simulation_id,
            SimulationType.CPU_STRESS.value,
        )
        return stopped

    # Memory pressure

    def allocate_memory(self, params: MemoryPressureParams) -> Simulation:
        simulation = self.tracker.create(SimulationType.MEMORY_PRESSURE, _camel(params))
        try:
            self.runner.allocate_memory(simulation.id, params.size_mb)
        except MemoryError:
            self.tracker.fail(simulation.id)
            self.event_log.error(
                "SIMULATION_FAILED",
                f"Failed to allocate {params.size_mb}MB",
                simulation.id,
                SimulationType.MEMORY_PRESSURE.value,
            )
            raise

        self.event_log.info(
            "SIMULATION_STARTED",
            f"Allocated {params.size_mb}MB of memory",
            simulation.id,
            SimulationType.MEMORY_PRESSURE.value,
            _camel(params),
        )
        return simulation

    def release_memory(self, simulation_id: str) -> tuple[Simulation | None, int]:
        """Release an allocation. Unknown ids are not an error.

        Returns:
            Tuple of (updated simulation or None, released megabytes).
        """

        released_mb = self.runner.release_memory(simulation_id)
        simulation = self.tracker.get(simulation_id)
        if simulation is None or simulation.type is not SimulationType.MEMORY_PRESSURE:
            return None, released_mb

        if simulation.status is SimulationStatus.ACTIVE:
            simulation = self.tracker.stop(simulation_id) or simulation
            self.event_log.info(
                "SIMULATION_STOPPED",
                f"Released {released_mb}MB of memory",
                simulation_id,
                SimulationType.MEMORY_PRESSURE.value,
            )
        return simulation, released_mb

    def allocated_mb(self) -> int:
        return self.runner.allocated_mb()

    # Synchronous simulations

    def block(self, params: BlockingParams) -> Simulation:
        simulation = self.tracker.create(
            SimulationType.REQUEST_BLOCKING, _camel(params), params.duration_seconds
        )
        self.event_log.warn(
            "SIMULATION_STARTED",
            f"Request thread blocking started for {params.duration_seconds}s "
            f"on {params.concurrent_workers} worker(s)",
            simulation.id,
            SimulationType.REQUEST_BLOCKING.value,
            _camel(params),
        )
        self._run_synchronously(
            simulation, lambda: self.runner.block(params.duration_seconds, params.concurrent_workers)
        )
        return self.tracker.complete(simulation.id) or simulation

    def slow_request(self, params: SlowRequestParams) -> Simulation:
        simulation = self.tracker.create(
            SimulationType.SLOW_REQUEST, _camel(params), params.delay_seconds
        )
        self.event_log.info(
            "SIMULATION_STARTED",
            f"Slow request started: {params.delay_seconds}s delay ({params.blocking_pattern})",
            simulation.id,
            SimulationType.SLOW_REQUEST.value,
            _camel(params),
        )
        self._run_synchronously(
            simulation, lambda: self.runner.delay(params.delay_seconds, params.blocking_pattern)
        )
        return self.tracker.complete(simulation.id) or simulation

    def _run_synchronously(self, simulation: Simulation, work) -> None:
        try:
            work()
        except Exception:
            self.tracker.fail(simulation.id)
            self.event_log.error(
                "SIMULATION_FAILED",
                f"{simulation.type.value} simulation failed",
                simulation.id,
                simulation.type.value,
            )
            raise
        self.event_log.success(
            "SIMULATION_COMPLETED",
            f"{simulation.type.value} simulation completed",
            simulation.id,
            simulation.type.value,
        )

    def active(self, sim_type: SimulationType | None = None) -> list[Simulation]:
        return self.tracker.active(sim_type)


_service: SimulationService | None = None
_service_lock = threading.Lock()


def get_simulation_service() -> SimulationService:
    """Return the process-wide simulation service (FastAPI dependency).

    Built once under a lock: concurrent first calls from threadpool
    workers all receive the same service and runner.
    """

    global _service

    if _service is None:
        with _service_lock:
            if _service is None:
                _service = SimulationService(
                    tracker=SimulationTracker(),
                    event_log=EventLog(max_entries=settings.server.event_log_max_entries),
                    runner=ThreadedSimulationRunner(),
                )
    return _service
