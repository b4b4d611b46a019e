from __future__ import annotations

from fastapi import APIRouter, Depends

from admission.core.auth import require_admin
from admission.core.pagination import pagination_params
from admission.core.rate_limit import enforce_rate_limit, get_rate_limiter
from admission.schemas.pagination import PaginatedResponse
from admission.schemas.rate_limit import RateLimitPolicyResponse
from admission.services.pagination_service import PaginationRequest, to_page, to_query_bound

router = APIRouter(tags=["Rate limits"])


@router.get(
    "/rate-limits",
    response_model=PaginatedResponse[RateLimitPolicyResponse],
    dependencies=[Depends(enforce_rate_limit), Depends(require_admin)],
)
async def list_rate_limit_policies(
    page_request: PaginationRequest = Depends(pagination_params()),
) -> PaginatedResponse[RateLimitPolicyResponse]:
    """List configured per-operation quotas, ordered by operation name.

    Administrators only. Paginated with ``?cursor=<operation>&limit=<n>``.
    """

    bound = to_query_bound(page_request, order_field="operation")
    rows = [
        RateLimitPolicyResponse(
            operation=operation,
            limit=policy.limit,
            window_seconds=policy.window_seconds,
        )
        for operation, policy in get_rate_limiter().policies.items()
        if bound.after is None or operation > str(bound.after)
    ][: bound.take]

    return PaginatedResponse[RateLimitPolicyResponse].from_page(
        to_page(rows, page_request, order_field="operation")
    )
