"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Validation bounds are derived from these settings once per process and
shared read-only by every validator (see get_validation_bounds()).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None

# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
# Skipped under pytest (conftest sets TESTING) so tests control the env.
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


APP_NAME = "perfsim"
APP_VERSION = "1.0.0"

# Validation limits that are not environment driven
MIN_DURATION_SECONDS = 1
MIN_MEMORY_MB = 1
MIN_CPU_LOAD_PERCENT = 1
MAX_CPU_LOAD_PERCENT = 100
DEFAULT_BLOCKING_CONCURRENT_WORKERS = 5
MAX_BLOCKING_CONCURRENT_WORKERS = 1000


class ServerSettings(BaseSettings):
    """Server and simulation limits.

    Environment names carry no prefix (PORT, METRICS_INTERVAL_MS, ...).
    A value that is not a valid integer falls back to the field default
    instead of failing startup.
    """

    port: int = Field(8080, description="HTTP server port")
    metrics_interval_ms: int = Field(
        500,
        description="How often dashboards poll metrics, in milliseconds",
    )
    max_simulation_duration_seconds: int = Field(
        86400,
        description="Maximum duration for timed simulations",
    )
    max_memory_allocation_mb: int = Field(
        65536,
        description="Maximum single memory allocation in megabytes",
    )
    event_log_max_entries: int = Field(
        100,
        description="Capacity of the in-memory event log ring buffer",
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("*", mode="before")
    @classmethod
    def _fallback_on_bad_int(cls, value: Any, info) -> Any:
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return cls.model_fields[info.field_name].default
        return value


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class ErrorSettings(BaseSettings):
    """Error reporting configuration."""

    reporting: str = Field(
        "UserWarning,RuntimeWarning",
        description=(
            "Comma-separated warning categories promoted to request faults; "
            "any other warning is dropped"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="ERROR_",
        case_sensitive=False,
    )

    @property
    def reporting_categories(self) -> list[str]:
        return [name.strip() for name in self.reporting.split(",") if name.strip()]


class Settings(BaseSettings):
    """Main application settings container.

    Environments:
    - development: Local development, full error diagnostics in responses
    - testing: Automated tests
    - staging: Pre-production
    - production: Internal error details are redacted from responses
    """

    app_env: str = APP_ENV
    server: ServerSettings = Field(default_factory=ServerSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    errors: ErrorSettings = Field(default_factory=ErrorSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def public_config(self) -> dict[str, int]:
        """Return the configuration summary exposed by the admin endpoint."""

        return {
            "port": self.server.port,
            "metricsIntervalMs": self.server.metrics_interval_ms,
            "maxSimulationDurationSeconds": self.server.max_simulation_duration_seconds,
            "maxMemoryAllocationMb": self.server.max_memory_allocation_mb,
            "eventLogMaxEntries": self.server.event_log_max_entries,
        }


@dataclass(frozen=True)
class ValidationBounds:
    """Immutable snapshot of the limits enforced by the validators."""

    min_duration_seconds: int
    max_duration_seconds: int
    min_memory_mb: int
    max_memory_mb: int
    min_cpu_load_percent: int
    max_cpu_load_percent: int
    default_blocking_workers: int
    max_blocking_workers: int


@lru_cache(maxsize=1)
def get_validation_bounds() -> ValidationBounds:
    """Build the validation bounds once per process.

    Returns:
        ValidationBounds derived from the global settings.
    """

    return ValidationBounds(
        min_duration_seconds=MIN_DURATION_SECONDS,
        max_duration_seconds=settings.server.max_simulation_duration_seconds,
        min_memory_mb=MIN_MEMORY_MB,
        max_memory_mb=settings.server.max_memory_allocation_mb,
        min_cpu_load_percent=MIN_CPU_LOAD_PERCENT,
        max_cpu_load_percent=MAX_CPU_LOAD_PERCENT,
        default_blocking_workers=DEFAULT_BLOCKING_CONCURRENT_WORKERS,
        max_blocking_workers=MAX_BLOCKING_CONCURRENT_WORKERS,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
