"""In-process simulation runner built on threads.

Notes:
- Per-process only: CPU load is produced by a single duty-cycled thread,
  so the achievable load is bounded by one core.
- Memory allocations are plain bytearrays filled at allocation time so the
  pages are actually committed.
"""

from __future__ import annotations

import hashlib
import logging
import tempfile
import threading
import time

from perfsim.adapters.simulation.base import AbstractSimulationRunner

logger = logging.getLogger(__name__)

_SLICE_SECONDS = 0.1
_MB = 1024 * 1024


def _burn_until(deadline: float, stop: threading.Event | None = None) -> None:
    while time.monotonic() < deadline and not (stop and stop.is_set()):
        hashlib.pbkdf2_hmac("sha256", b"perfsim", b"salt", 2000)


def _file_io_until(deadline: float) -> None:
    chunk = b"\x5a" * _MB
    with tempfile.TemporaryFile() as handle:
        while time.monotonic() < deadline:
            handle.seek(0)
            handle.write(chunk)
            handle.flush()
            handle.seek(0)
            handle.read()


class ThreadedSimulationRunner(AbstractSimulationRunner):
    """Runs simulations inside the API process."""

    def __init__(self) -> None:
        self._cpu_stops: dict[str, threading.Event] = {}
        self._allocations: dict[str, bytearray] = {}
        self._lock = threading.RLock()

    def start_cpu_stress(self, simulation_id: str, target_load_percent: int, duration_seconds: int) -> None:
        stop = threading.Event()
        with self._lock:
            self._cpu_stops[simulation_id] = stop

        thread = threading.Thread(
            target=self._cpu_duty_cycle,
            args=(simulation_id, target_load_percent / 100, time.monotonic() + duration_seconds, stop),
            name=f"cpu-stress-{simulation_id[:8]}",
            daemon=True,
        )
        thread.start()

    def _cpu_duty_cycle(self, simulation_id: str, load: float, deadline: float, stop: threading.Event) -> None:
        busy = _SLICE_SECONDS * load
        try:
            while time.monotonic() < deadline and not stop.is_set():
                slice_end = time.monotonic() + busy
                while time.monotonic() < slice_end:
                    pass
                stop.wait(_SLICE_SECONDS - busy)
        finally:
            with self._lock:
                self._cpu_stops.pop(simulation_id, None)
            logger.info("cpu_stress.finished", extra={"simulation_id": simulation_id})

    def stop_cpu_stress(self, simulation_id: str) -> bool:
        with self._lock:
            stop = self._cpu_stops.pop(simulation_id, None)
        if stop is None:
            return False
        stop.set()
        return True

    def allocate_memory(self, simulation_id: str, size_mb: int) -> None:
        buffer = bytearray(b"\xa5") * (size_mb * _MB)
        with self._lock:
            self._allocations[simulation_id] = buffer

    def release_memory(self, simulation_id: str) -> int:
        with self._lock:
            buffer = self._allocations.pop(simulation_id, None)
        return len(buffer) // _MB if buffer is not None else 0

    def allocated_mb(self) -> int:
        with self._lock:
            return sum(len(buf) for buf in self._allocations.values()) // _MB

    def block(self, duration_seconds: int, concurrent_workers: int) -> None:
        deadline = time.monotonic() + duration_seconds
        workers = [
            threading.Thread(target=_burn_until, args=(deadline,), daemon=True)
            for _ in range(concurrent_workers)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

    def delay(self, delay_seconds: int, blocking_pattern: str) -> None:
        deadline = time.monotonic() + delay_seconds
        if blocking_pattern == "cpu_intensive":
            _burn_until(deadline)
        elif blocking_pattern == "file_io":
            _file_io_until(deadline)
        else:
            time.sleep(delay_seconds)
