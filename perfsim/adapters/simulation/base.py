"""Simulation runner interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractSimulationRunner(ABC):
    """Interface for the components that actually consume resources."""

    @abstractmethod
    def start_cpu_stress(self, simulation_id: str, target_load_percent: int, duration_seconds: int) -> None:
        """Start burning CPU in the background; returns immediately."""
        raise NotImplementedError

    @abstractmethod
    def stop_cpu_stress(self, simulation_id: str) -> bool:
        """Stop a CPU stress run. Returns False if it was not running."""
        raise NotImplementedError

    @abstractmethod
    def allocate_memory(self, simulation_id: str, size_mb: int) -> None:
        """Allocate and hold ``size_mb`` megabytes until released."""
        raise NotImplementedError

    @abstractmethod
    def release_memory(self, simulation_id: str) -> int:
        """Release an allocation. Returns the released size in MB (0 if unknown)."""
        raise NotImplementedError

    @abstractmethod
    def allocated_mb(self) -> int:
        """Total megabytes currently held."""
        raise NotImplementedError

    @abstractmethod
    def block(self, duration_seconds: int, concurrent_workers: int) -> None:
        """Keep ``concurrent_workers`` threads busy; returns when the duration elapses."""
        raise NotImplementedError

    @abstractmethod
    def delay(self, delay_seconds: int, blocking_pattern: str) -> None:
        """Hold the calling request for ``delay_seconds`` using the given pattern."""
        raise NotImplementedError
