"""Pagination schemas."""

import math
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel

from ostobilling.core.config import settings
from ostobilling.core.exceptions import InvalidInputException

T = TypeVar("T")


class PageParams(BaseModel):
    """Validated page and limit of a list request."""

    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        """Rows to skip before this page."""
        return (self.page - 1) * self.limit

    @classmethod
    def build(cls, page: int = 1, limit: int | None = None) -> "PageParams":
        """Validate page and limit.

        Raises:
        ------
            InvalidInputException: If page is below 1 or limit is outside 1..MAX_PAGE_SIZE.

        """
        if limit is None:
            limit = settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise InvalidInputException("page must be at least 1")
        if limit < 1 or limit > settings.MAX_PAGE_SIZE:
            raise InvalidInputException(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")
        return cls(page=page, limit=limit)


class Page(BaseModel, Generic[T]):
    """A page of results with the true total across all pages."""

    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def create(cls, items: Sequence, total: int, params: PageParams) -> "Page":
        """Build a page from rows, the full count and the request parameters."""
        return cls.model_validate(
            {
                "items": list(items),
                "total": total,
                "page": params.page,
                "limit": params.limit,
                "total_pages": math.ceil(total / params.limit) if total else 0,
            },
            from_attributes=True,
        )
