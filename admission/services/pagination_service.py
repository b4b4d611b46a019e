"""Cursor-based pagination.

The cursor is the ordering-key value of the last item of a page; the next
page is everything strictly greater. Pages over-fetch one row to learn
whether another page exists without a count query.

The ordering key must be unique and monotonic (e.g., an auto-increment id).
Non-unique keys such as timestamps can skip or repeat rows across pages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, Sequence, TypeVar

T = TypeVar("T")

Cursor = str | int


@dataclass(frozen=True)
class PaginationPolicy:
    default_limit: int = 20
    max_limit: int = 100

    def __post_init__(self) -> None:
        if self.max_limit < 1:
            raise ValueError("max_limit must be >= 1")
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError("default_limit must be within [1, max_limit]")


@dataclass(frozen=True)
class PaginationRequest:
    cursor: Cursor | None
    limit: int


@dataclass(frozen=True)
class QueryBound:
    """Bounded query directive for the persistence layer.

    Attributes:
        take: Rows to fetch (page size plus one look-ahead row).
        order_field: Field the rows must be sorted on, ascending.
        after: Exclusive lower bound on order_field, or None for the first page.
    """

    take: int
    order_field: str
    after: Cursor | None = None

    @property
    def order_by(self) -> tuple[str, str]:
        return (self.order_field, "asc")

    @property
    def filter(self) -> dict[str, dict[str, Cursor]] | None:
        if self.after is None:
            return None
        return {self.order_field: {"gt": self.after}}

    def as_dict(self) -> dict[str, Any]:
        """Render as an ORM-style query mapping."""
        query: dict[str, Any] = {
            "take": self.take,
            "orderBy": {self.order_field: "asc"},
        }
        if self.filter is not None:
            query["where"] = self.filter
        return query


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    has_next_page: bool
    next_cursor: Any
    limit: int

    def envelope(self) -> dict[str, Any]:
        """Response body: the data array alongside the pagination block."""
        return {
            "data": self.items,
            "pagination": {
                "hasNextPage": self.has_next_page,
                "nextCursor": self.next_cursor,
                "limit": self.limit,
            },
        }


def _coerce_limit(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def parse_pagination(raw: Mapping[str, Any] | None, policy: PaginationPolicy) -> PaginationRequest:
    """Turn client-supplied ``cursor``/``limit`` into a bounded request.

    Never raises: a missing or non-numeric limit falls back to the default,
    and any limit is clamped to ``[1, policy.max_limit]``. The cursor is
    passed through untouched (an empty string counts as absent).
    """
    raw = raw or {}
    limit = _coerce_limit(raw.get("limit"))
    if limit is None:
        limit = policy.default_limit
    limit = max(1, min(limit, policy.max_limit))

    cursor = raw.get("cursor")
    if cursor == "":
        cursor = None
    return PaginationRequest(cursor=cursor, limit=limit)


def to_query_bound(request: PaginationRequest, order_field: str = "id") -> QueryBound:
    return QueryBound(take=request.limit + 1, order_field=order_field, after=request.cursor)


def _field_value(row: Any, order_field: str) -> Any:
    if isinstance(row, Mapping):
        return row[order_field]
    return getattr(row, order_field)


def to_page(rows: Sequence[T], request: PaginationRequest, order_field: str = "id") -> Page[T]:
    """Build a page from rows fetched with :func:`to_query_bound`.

    Args:
        rows: Up to ``limit + 1`` rows in ascending order_field order.
        request: The request the rows were fetched for.
        order_field: Field whose value becomes the next cursor.
    """
    has_next_page = len(rows) > request.limit
    items = list(rows[: request.limit])
    next_cursor = _field_value(items[-1], order_field) if has_next_page and items else None
    return Page(items=items, has_next_page=has_next_page, next_cursor=next_cursor, limit=request.limit)
