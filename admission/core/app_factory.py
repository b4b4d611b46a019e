"""Application factory for FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) to improve testability compared to a monolithic main.
"""

from __future__ import annotations

from fastapi import FastAPI

from admission.api.routes import health_router, identity_router, rate_limits_router
from admission.core.config import settings
from admission.core.exception_handlers import setup_exception_handlers
from admission.core.lifecycle import create_lifespan_manager
from admission.core.logging import configure_logging
from admission.core.middleware import request_id_middleware
from admission.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Task Admission API",
        description=(
            "Admission control for the task management backend: caller identity "
            "resolution, per-operation rate limiting, role and relationship based "
            "authorization, and cursor pagination helpers shared by the REST and "
            "GraphQL front-ends."
        ),
        version="0.1.0",
        lifespan=create_lifespan_manager(),
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(identity_router, prefix="/v1")
    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
