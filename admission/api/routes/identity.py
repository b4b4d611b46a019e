from __future__ import annotations

from fastapi import APIRouter, Depends

from admission.core.auth import enforce_authorization, identity_payload, resolve_identity
from admission.core.rate_limit import enforce_rate_limit
from admission.schemas.identity import IdentityResponse
from admission.services.identity_service import Identity

router = APIRouter(tags=["Identity"])


@router.get(
    "/me",
    response_model=IdentityResponse,
    dependencies=[Depends(enforce_rate_limit), Depends(enforce_authorization)],
)
async def who_am_i(identity: Identity = Depends(resolve_identity)) -> IdentityResponse:
    """Return the identity the admission layer resolved for this request.

    Anonymous callers are answered too (with their network origin), so
    clients can check whether their token is being accepted.
    """

    return IdentityResponse(**identity_payload(identity))
