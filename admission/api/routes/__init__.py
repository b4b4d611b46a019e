from __future__ import annotations

from admission.api.routes.health import router as health_router
from admission.api.routes.identity import router as identity_router
from admission.api.routes.rate_limits import router as rate_limits_router

__all__ = ["health_router", "identity_router", "rate_limits_router"]
