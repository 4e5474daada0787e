"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before anything imports the settings module.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ["APP_ENV"] = "testing"

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from perfsim.adapters.simulation.base import AbstractSimulationRunner
from perfsim.core.app_factory import create_app
from perfsim.services.event_log import EventLog
from perfsim.services.simulation_service import SimulationService, get_simulation_service
from perfsim.services.simulation_tracker import SimulationTracker


class RecordingRunner(AbstractSimulationRunner):
    """Runner double that records calls instead of consuming resources."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.allocations: dict[str, int] = {}
        self.fail_with: Exception | None = None

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def start_cpu_stress(self, simulation_id, target_load_percent, duration_seconds):
        self._record("start_cpu_stress", simulation_id, target_load_percent, duration_seconds)

    def stop_cpu_stress(self, simulation_id):
        self._record("stop_cpu_stress", simulation_id)
        return True

    def allocate_memory(self, simulation_id, size_mb):
        self._record("allocate_memory", simulation_id, size_mb)
        self.allocations[simulation_id] = size_mb

    def release_memory(self, simulation_id):
        self._record("release_memory", simulation_id)
        return self.allocations.pop(simulation_id, 0)

    def allocated_mb(self):
        return sum(self.allocations.values())

    def block(self, duration_seconds, concurrent_workers):
        self._record("block", duration_seconds, concurrent_workers)

    def delay(self, delay_seconds, blocking_pattern):
        self._record("delay", delay_seconds, blocking_pattern)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def service(runner: RecordingRunner) -> SimulationService:
    return SimulationService(
        tracker=SimulationTracker(),
        event_log=EventLog(max_entries=100),
        runner=runner,
    )


@pytest.fixture
def app(service: SimulationService) -> FastAPI:
    """Fresh app wired to an in-memory service with a recording runner."""
    application = create_app(configure_logs=False)
    application.dependency_overrides[get_simulation_service] = lambda: service
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client that returns 500 responses instead of re-raising."""
    return TestClient(app, raise_server_exceptions=False)
