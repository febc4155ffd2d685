"""Pagination schemas and utilities."""

from typing import Generic, List, TypeVar

from pydantic import Field

from staff_roster.schemas.base import CamelModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


class PaginatedResponse(CamelModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: List[T]
    total: int = Field(description="Total number of items matching the query")
    page: int = Field(description="1-based page number")
    page_size: int = Field(description="Maximum items per page")
    has_more: bool = Field(description="Whether more items are available")

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        page: int,
        page_size: int,
    ) -> "PaginatedResponse[T]":
        """Create a paginated response."""
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            has_more=(page - 1) * page_size + len(items) < total,
        )


def paginate_query(query, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE):
    """
    Apply page-based pagination to a SQLAlchemy query.

    Returns:
        Tuple of (page items, total count)
    """
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return items, total
