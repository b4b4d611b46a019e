from __future__ import annotations

from pydantic import BaseModel, Field


class IdentityResponse(BaseModel):
    """Resolved caller identity."""

    authenticated: bool = Field(..., description="Whether a verified token was presented")
    user_id: int | str | None = Field(None, description="Account id (authenticated callers)")
    role: str | None = Field(None, description="USER, ADMIN or SUPERADMIN (authenticated callers)")
    ip_address: str | None = Field(None, description="Network origin (anonymous callers)")
