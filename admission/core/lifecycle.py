"""Application lifecycle management.

Starts the expired-window sweeper on startup and stops it (and closes any
networked store) on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from admission.adapters.rate_limit.redis_store import RedisRateLimitStore
from admission.core.config import settings
from admission.core.rate_limit import create_sweeper, get_rate_limiter

logger = logging.getLogger(__name__)


def create_lifespan_manager():
    """Create the application lifespan manager."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limiter = get_rate_limiter()
        sweeper = create_sweeper()
        sweeper.start()
        app.state.rate_limiter = limiter
        app.state.rate_limit_sweeper = sweeper
        logger.info(
            "application_startup",
            extra={
                "env": settings.app_env,
                "rate_limit_enabled": settings.rate_limit.enabled,
                "rate_limit_backend": settings.rate_limit.backend,
                "rate_limit_policies": len(limiter.policies),
            },
        )

        yield

        await sweeper.stop()
        store = get_rate_limiter().store
        if isinstance(store, RedisRateLimitStore):
            await store.close()
        logger.info("application_shutdown", extra={"env": settings.app_env})

    return lifespan
