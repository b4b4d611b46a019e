from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitPolicyResponse(BaseModel):
    """Quota configured for one operation."""

    operation: str = Field(..., description="Normalized 'METHOD /path' or GraphQL field name")
    limit: int = Field(..., description="Requests allowed per window")
    window_seconds: int = Field(..., description="Window size in seconds")
