"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from perfsim.api.routes import admin_router, health_router, metrics_router, simulations_router
from perfsim.core.config import APP_VERSION, settings
from perfsim.core.exception_handlers import setup_exception_handlers
from perfsim.core.logging import configure_logging
from perfsim.core.middleware import request_logging_middleware


def create_app(*, configure_logs: bool = True) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        configure_logs: Install the root logging configuration. Tests pass
            False to keep pytest's log capture in place.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    if configure_logs:
        configure_logging(settings.log)

    app = FastAPI(
        title="PerfSim API",
        description=(
            "Triggers synthetic resource-stress scenarios (CPU load, memory "
            "pressure, request blocking, slow requests). Every failure is "
            "returned as a JSON error object with a stable machine-readable kind."
        ),
        version=APP_VERSION,
    )

    # Error boundary first, then the request logger so it wraps the boundary
    setup_exception_handlers(app)
    app.middleware("http")(request_logging_middleware)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(simulations_router)
    app.include_router(admin_router)

    return app
