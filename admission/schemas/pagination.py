from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from admission.services.pagination_service import Page

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination block returned alongside a data array."""

    hasNextPage: bool = Field(..., description="Whether another page follows")
    nextCursor: Any = Field(None, description="Cursor for the next page, null on the last page")
    limit: int = Field(..., description="Applied page size")


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for cursor-paginated lists."""

    data: list[T]
    pagination: PaginationMeta

    @classmethod
    def from_page(cls, page: Page[Any]) -> "PaginatedResponse[T]":
        return cls(
            data=page.items,
            pagination=PaginationMeta(
                hasNextPage=page.has_next_page,
                nextCursor=page.next_cursor,
                limit=page.limit,
            ),
        )
