"""Dependencies that are used in the API endpoints."""

from typing import Optional

from fastapi import Query

from ostobilling import schemas
from ostobilling.core.config import settings
from ostobilling.db.session import get_db

__all__ = ["get_db", "get_page_params"]


async def get_page_params(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: Optional[int] = Query(
        None, description=f"Page size, 1 to {settings.MAX_PAGE_SIZE}"
    ),
) -> schemas.PageParams:
    """Validate the page and limit query parameters.

    Raises:
    ------
        InvalidInputException: If page or limit is out of range.

    """
    return schemas.PageParams.build(page=page, limit=limit)
