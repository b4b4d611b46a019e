"""Cursor pagination dependency for FastAPI routes."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import Query, Response

from admission.core.config import settings
from admission.services.pagination_service import (
    PaginationPolicy,
    PaginationRequest,
    parse_pagination,
)


def default_pagination_policy() -> PaginationPolicy:
    """Policy from ``settings.pagination``; the default never exceeds the maximum."""
    return PaginationPolicy(
        default_limit=min(settings.pagination.default_limit, settings.pagination.max_limit),
        max_limit=settings.pagination.max_limit,
    )


def pagination_params(
    default_limit: int | None = None,
    max_limit: int | None = None,
    cursor_type: Callable[[str], Any] | None = None,
) -> Callable[..., PaginationRequest]:
    """Build a dependency that parses ``?cursor=&limit=`` query parameters.

    Limits are never rejected: anything missing, non-numeric or out of range
    is defaulted or clamped. A default above the effective maximum is
    lowered to that maximum. The applied limits are echoed in the
    ``X-Pagination-Limit`` and ``X-Pagination-Max-Limit`` headers.

    Args:
        default_limit: Override of ``PAGINATION_DEFAULT_LIMIT``.
        max_limit: Override of ``PAGINATION_MAX_LIMIT``.
        cursor_type: Converter applied to the cursor (e.g. ``int`` for numeric
            ids). A cursor it cannot convert is passed through unchanged.
    """

    base = default_pagination_policy()
    effective_max = max_limit or base.max_limit
    policy = PaginationPolicy(
        default_limit=min(default_limit or base.default_limit, effective_max),
        max_limit=effective_max,
    )

    def dependency(
        response: Response,
        cursor: str | None = Query(None, description="Cursor returned by the previous page"),
        limit: str | None = Query(None, description="Page size"),
    ) -> PaginationRequest:
        if cursor is not None and cursor_type is not None:
            try:
                cursor = cursor_type(cursor)
            except (TypeError, ValueError):
                pass
        request = parse_pagination({"cursor": cursor, "limit": limit}, policy)
        response.headers["X-Pagination-Limit"] = str(request.limit)
        response.headers["X-Pagination-Max-Limit"] = str(policy.max_limit)
        return request

    return dependency
