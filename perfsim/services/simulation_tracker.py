"""Registry of running and finished simulations."""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable

from perfsim.utils.timestamps import epoch_to_timestamp


class SimulationType(str, Enum):
    CPU_STRESS = "CPU_STRESS"
    MEMORY_PRESSURE = "MEMORY_PRESSURE"
    REQUEST_BLOCKING = "REQUEST_BLOCKING"
    SLOW_REQUEST = "SLOW_REQUEST"


class SimulationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Simulation:
    """Snapshot of a simulation record.

    ``scheduled_end`` is the epoch time after which an ACTIVE simulation is
    considered complete; None means it runs until stopped.
    """

    id: str
    type: SimulationType
    parameters: dict[str, Any]
    status: SimulationStatus
    started_at: str
    scheduled_end: float | None = None
    stopped_at: str | None = None

    @property
    def scheduled_end_at(self) -> str | None:
        if self.scheduled_end is None:
            return None
        return epoch_to_timestamp(self.scheduled_end)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "parameters": self.parameters,
            "status": self.status.value,
            "startedAt": self.started_at,
            "stoppedAt": self.stopped_at,
            "scheduledEndAt": self.scheduled_end_at,
        }


class SimulationTracker:
    """Thread-safe, in-memory simulation registry.

    Timed simulations whose scheduled end has passed are marked COMPLETED
    lazily, the next time the registry is read.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._simulations: dict[str, Simulation] = {}
        self._lock = threading.RLock()

    def create(
        self,
        sim_type: SimulationType,
        parameters: dict[str, Any],
        duration_seconds: int | None = None,
    ) -> Simulation:
        now = self._clock()
        simulation = Simulation(
            id=str(uuid.uuid4()),
            type=sim_type,
            parameters=dict(parameters),
            status=SimulationStatus.ACTIVE,
            started_at=epoch_to_timestamp(now),
            scheduled_end=now + duration_seconds if duration_seconds is not None else None,
        )
        with self._lock:
            self._simulations[simulation.id] = simulation
        return simulation

    def get(self, simulation_id: str) -> Simulation | None:
        with self._lock:
            self._expire_locked()
            return self._simulations.get(simulation_id)

    def active(self, sim_type: SimulationType | None = None) -> list[Simulation]:
        with self._lock:
            self._expire_locked()
            return [
                sim
                for sim in self._simulations.values()
                if sim.status is SimulationStatus.ACTIVE and (sim_type is None or sim.type is sim_type)
            ]

    def stop(self, simulation_id: str) -> Simulation | None:
        return self._finish(simulation_id, SimulationStatus.STOPPED)

    def complete(self, simulation_id: str) -> Simulation | None:
        return self._finish(simulation_id, SimulationStatus.COMPLETED)

    def fail(self, simulation_id: str) -> Simulation | None:
        return self._finish(simulation_id, SimulationStatus.FAILED)

    def clear(self) -> None:
        with self._lock:
            self._simulations.clear()

    def _finish(self, simulation_id: str, status: SimulationStatus) -> Simulation | None:
        with self._lock:
            simulation = self._simulations.get(simulation_id)
            if simulation is None:
                return None
            updated = replace(simulation, status=status, stopped_at=epoch_to_timestamp(self._clock()))
            self._simulations[simulation_id] = updated
            return updated

    def _expire_locked(self) -> None:
        now = self._clock()
        for sim_id, sim in list(self._simulations.items()):
            if (
                sim.status is SimulationStatus.ACTIVE
                and sim.scheduled_end is not None
                and sim.scheduled_end <= now
            ):
                self._simulations[sim_id] = replace(
                    sim,
                    status=SimulationStatus.COMPLETED,
                    stopped_at=epoch_to_timestamp(sim.scheduled_end),
                )
