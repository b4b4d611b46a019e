from __future__ import annotations

from fastapi import APIRouter

from admission.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers.

    Also reports whether rate limiting is active and which window store
    backs it.
    """

    return {
        "status": "ok",
        "rate_limit": {
            "enabled": settings.rate_limit.enabled,
            "backend": settings.rate_limit.backend,
        },
    }
