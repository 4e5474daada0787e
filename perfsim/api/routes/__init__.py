from __future__ import annotations

from perfsim.api.routes.admin import router as admin_router
from perfsim.api.routes.health import router as health_router
from perfsim.api.routes.metrics import router as metrics_router
from perfsim.api.routes.simulations import router as simulations_router

__all__ = ["admin_router", "health_router", "metrics_router", "simulations_router"]
