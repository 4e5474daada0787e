"""Tests for SimulationService orchestration."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import create_autospec, patch

import pytest

from perfsim.adapters.simulation.base import AbstractSimulationRunner
from perfsim.core.errors import NotFoundError
from perfsim.core.validation import (
    BlockingParams,
    CpuStressParams,
    MemoryPressureParams,
    SlowRequestParams,
)
from perfsim.services import simulation_service
from perfsim.services.event_log import EventLog
from perfsim.services.simulation_service import SimulationService
from perfsim.services.simulation_tracker import SimulationStatus, SimulationTracker, SimulationType


class TestCpuStress:
    def test_start_hands_work_to_runner(self, service, runner) -> None:
        sim = service.start_cpu_stress(CpuStressParams(target_load_percent=75, duration_seconds=30))

        assert sim.type is SimulationType.CPU_STRESS
        assert sim.parameters == {"targetLoadPercent": 75, "durationSeconds": 30}
        assert runner.calls == [("start_cpu_stress", sim.id, 75, 30)]
        assert service.event_log.recent(1)[0].event == "SIMULATION_STARTED"

    def test_stop_marks_simulation_stopped(self, service, runner) -> None:
        sim = service.start_cpu_stress(CpuStressParams(target_load_percent=50, duration_seconds=60))

        stopped = service.stop_cpu_stress(sim.id)

        assert stopped.status is SimulationStatus.STOPPED
        assert ("stop_cpu_stress", sim.id) in runner.calls
        assert service.active() == []

    def test_stop_unknown_id(self, service) -> None:
        with pytest.raises(NotFoundError, match="^Simulation not found$"):
            service.stop_cpu_stress("00000000-0000-4000-8000-000000000000")

    def test_stop_wrong_type(self, service) -> None:
        sim = service.allocate_memory(MemoryPressureParams(size_mb=1))

        with pytest.raises(NotFoundError, match="not a CPU stress simulation"):
            service.stop_cpu_stress(sim.id)

    def test_stop_twice(self, service) -> None:
        sim = service.start_cpu_stress(CpuStressParams(target_load_percent=50, duration_seconds=60))
        service.stop_cpu_stress(sim.id)

        with pytest.raises(NotFoundError, match="Simulation is not active") as exc_info:
            service.stop_cpu_stress(sim.id)
        assert exc_info.value.status_code == 404


class TestMemoryPressure:
    def test_allocate_and_release(self, service) -> None:
        sim = service.allocate_memory(MemoryPressureParams(size_mb=64))
        assert service.allocated_mb() == 64

        released, released_mb = service.release_memory(sim.id)

        assert released.status is SimulationStatus.STOPPED
        assert released_mb == 64
        assert service.allocated_mb() == 0

    def test_release_is_idempotent(self, service) -> None:
        sim = service.allocate_memory(MemoryPressureParams(size_mb=8))
        service.release_memory(sim.id)

        again, released_mb = service.release_memory(sim.id)

        assert again.status is SimulationStatus.STOPPED
        assert released_mb == 0

    def test_release_unknown_id(self, service) -> None:
        assert service.release_memory("00000000-0000-4000-8000-000000000000") == (None, 0)

    def test_allocation_failure_marks_simulation_failed(self, service, runner) -> None:
        runner.fail_with = MemoryError()

        with pytest.raises(MemoryError):
            service.allocate_memory(MemoryPressureParams(size_mb=1))

        assert service.active() == []
        assert service.event_log.recent(1)[0].event == "SIMULATION_FAILED"


class TestSynchronousSimulations:
    def test_block_completes(self, service, runner) -> None:
        sim = service.block(BlockingParams(duration_seconds=2, concurrent_workers=3))

        assert sim.status is SimulationStatus.COMPLETED
        assert runner.calls == [("block", 2, 3)]
        events = [entry.event for entry in service.event_log.entries()]
        assert events == ["SIMULATION_STARTED", "SIMULATION_COMPLETED"]

    def test_slow_request_completes(self, service, runner) -> None:
        sim = service.slow_request(SlowRequestParams(delay_seconds=1, blocking_pattern="file_io"))

        assert sim.status is SimulationStatus.COMPLETED
        assert sim.parameters == {"delaySeconds": 1, "blockingPattern": "file_io"}
        assert runner.calls == [("delay", 1, "file_io")]

    def test_runner_failure_marks_simulation_failed(self, service, runner) -> None:
        runner.fail_with = RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            service.slow_request(SlowRequestParams(delay_seconds=1, blocking_pattern="file_io"))

        failed = service.tracker.active()
        assert failed == []
        assert service.event_log.recent(1)[0].level == "error"


class TestRunnerCollaboration:
    @pytest.fixture
    def mocked_runner(self):
        return create_autospec(AbstractSimulationRunner, instance=True)

    @pytest.fixture
    def mocked_service(self, mocked_runner) -> SimulationService:
        return SimulationService(
            tracker=SimulationTracker(), event_log=EventLog(), runner=mocked_runner
        )

    def test_stop_is_forwarded_to_runner(self, mocked_service, mocked_runner) -> None:
        sim = mocked_service.start_cpu_stress(
            CpuStressParams(target_load_percent=20, duration_seconds=60)
        )

        mocked_service.stop_cpu_stress(sim.id)

        mocked_runner.start_cpu_stress.assert_called_once_with(sim.id, 20, 60)
        mocked_runner.stop_cpu_stress.assert_called_once_with(sim.id)

    def test_failed_stop_is_reported_as_not_found(self, mocked_service) -> None:
        sim = mocked_service.start_cpu_stress(
            CpuStressParams(target_load_percent=20, duration_seconds=60)
        )

        with patch.object(mocked_service.tracker, "stop", return_value=None):
            with pytest.raises(NotFoundError, match="Failed to stop simulation"):
                mocked_service.stop_cpu_stress(sim.id)

    def test_allocated_mb_comes_from_runner(self, mocked_service, mocked_runner) -> None:
        mocked_runner.allocated_mb.return_value = 512

        assert mocked_service.allocated_mb() == 512


class TestSharedService:
    def test_concurrent_first_calls_share_one_instance(self, monkeypatch) -> None:
        class SlowRunner:
            def __init__(self) -> None:
                time.sleep(0.05)

        monkeypatch.setattr(simulation_service, "_service", None)
        monkeypatch.setattr(simulation_service, "ThreadedSimulationRunner", SlowRunner)

        barrier = threading.Barrier(8)

        def first_call():
            barrier.wait()
            return simulation_service.get_simulation_service()

        with ThreadPoolExecutor(max_workers=8) as pool:
            services = list(pool.map(lambda _: first_call(), range(8)))

        assert len({id(service) for service in services}) == 1
        assert isinstance(services[0].runner, SlowRunner)

    def test_later_calls_return_cached_instance(self, monkeypatch) -> None:
        monkeypatch.setattr(simulation_service, "_service", None)

        first = simulation_service.get_simulation_service()

        assert simulation_service.get_simulation_service() is first
