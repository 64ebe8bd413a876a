"""
Pagination helpers shared by list endpoints.

Both helpers clamp their inputs the same way: a page number below 1 becomes 1
and a page size below 1 becomes DEFAULT_PAGE_SIZE.
"""

import math
from typing import Any, Callable, Generic, List, Sequence, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, computed_field
from sqlalchemy.orm import Query

from core.constants import DEFAULT_PAGE_SIZE

T = TypeVar('T')


class PagedResult(BaseModel, Generic[T]):
    """One page of results plus the counters clients need to render paging controls."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[T]
    page_number: int
    page_size: int
    total_count: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    def map(self, func: Callable[[Any], Any]) -> "PagedResult[Any]":
        """Return the same page with every item converted by func."""
        return PagedResult[Any](
            items=[func(item) for item in self.items],
            page_number=self.page_number,
            page_size=self.page_size,
            total_count=self.total_count,
        )


def normalize_page(page_number: int, page_size: int) -> Tuple[int, int]:
    """Clamp page number and size to usable values."""
    if page_number < 1:
        page_number = 1
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    return page_number, page_size


def paginate(query: Query[Any], page_number: int, page_size: int) -> PagedResult[Any]:
    """
    Run a query for one page of rows.

    The count runs on the unpaged query, so ordering should already be applied
    by the caller for stable pages.

    Args:
        query: SQLAlchemy query to page through
        page_number: 1-based page number
        page_size: Rows per page

    Returns:
        PagedResult holding the ORM rows of the requested page
    """
    page_number, page_size = normalize_page(page_number, page_size)
    total_count = query.order_by(None).count()
    items = query.offset((page_number - 1) * page_size).limit(page_size).all()
    return PagedResult[Any](
        items=list(items),
        page_number=page_number,
        page_size=page_size,
        total_count=total_count,
    )


def paginate_list(items: Sequence[T], page_number: int, page_size: int) -> PagedResult[Any]:
    """Page through an already materialized list (used for in-memory groupings)."""
    page_number, page_size = normalize_page(page_number, page_size)
    start = (page_number - 1) * page_size
    return PagedResult[Any](
        items=list(items[start:start + page_size]),
        page_number=page_number,
        page_size=page_size,
        total_count=len(items),
    )
