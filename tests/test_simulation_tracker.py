"""Tests for the simulation registry."""

from perfsim.services.simulation_tracker import (
    SimulationStatus,
    SimulationTracker,
    SimulationType,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_create_records_active_simulation() -> None:
    clock = FakeClock()
    tracker = SimulationTracker(clock=clock)

    sim = tracker.create(SimulationType.CPU_STRESS, {"targetLoadPercent": 50}, 10)

    assert sim.status is SimulationStatus.ACTIVE
    assert sim.scheduled_end == clock.now + 10
    assert sim.started_at == "2023-11-14T22:13:20.000Z"
    assert sim.scheduled_end_at == "2023-11-14T22:13:30.000Z"
    assert tracker.get(sim.id) == sim
    assert tracker.active() == [sim]


def test_timed_simulation_completes_after_scheduled_end() -> None:
    clock = FakeClock()
    tracker = SimulationTracker(clock=clock)
    sim = tracker.create(SimulationType.CPU_STRESS, {}, 10)

    clock.now += 10

    expired = tracker.get(sim.id)
    assert expired.status is SimulationStatus.COMPLETED
    assert expired.stopped_at == sim.scheduled_end_at
    assert tracker.active() == []


def test_untimed_simulation_stays_active() -> None:
    clock = FakeClock()
    tracker = SimulationTracker(clock=clock)
    sim = tracker.create(SimulationType.MEMORY_PRESSURE, {"sizeMb": 10})

    clock.now += 10_000

    assert tracker.get(sim.id).status is SimulationStatus.ACTIVE


def test_active_filters_by_type() -> None:
    tracker = SimulationTracker(clock=FakeClock())
    cpu = tracker.create(SimulationType.CPU_STRESS, {}, 60)
    memory = tracker.create(SimulationType.MEMORY_PRESSURE, {})

    assert tracker.active(SimulationType.CPU_STRESS) == [cpu]
    assert tracker.active(SimulationType.MEMORY_PRESSURE) == [memory]


def test_stop_complete_and_fail_set_terminal_status() -> None:
    clock = FakeClock()
    tracker = SimulationTracker(clock=clock)
    stopped = tracker.create(SimulationType.CPU_STRESS, {}, 60)
    completed = tracker.create(SimulationType.SLOW_REQUEST, {}, 1)
    failed = tracker.create(SimulationType.REQUEST_BLOCKING, {}, 1)

    clock.now += 0.5

    assert tracker.stop(stopped.id).status is SimulationStatus.STOPPED
    assert tracker.complete(completed.id).status is SimulationStatus.COMPLETED
    result = tracker.fail(failed.id)
    assert result.status is SimulationStatus.FAILED
    assert result.stopped_at == "2023-11-14T22:13:20.500Z"
    assert tracker.active() == []


def test_unknown_id() -> None:
    tracker = SimulationTracker()

    assert tracker.get("missing") is None
    assert tracker.stop("missing") is None


def test_parameters_are_copied() -> None:
    params = {"sizeMb": 1}
    sim = SimulationTracker().create(SimulationType.MEMORY_PRESSURE, params)
    params["sizeMb"] = 2

    assert sim.parameters == {"sizeMb": 1}
