# backend/blog/listing.py
"""
Page-sized views over the content store.

Pages are 1-indexed. A page number below 1 is clamped to 1; a page past the
last one is an empty page, not an error. ``total_pages`` is 0 when there is
nothing to show.
"""
import math
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings

from core.exceptions import ValidationError
from . import store


@dataclass
class Page:
    items: list
    total_pages: int
    current_page: int
    total_items: int
    page_size: int
    has_next: bool = field(init=False)
    has_previous: bool = field(init=False)

    def __post_init__(self):
        self.has_next = self.current_page < self.total_pages
        self.has_previous = self.current_page > 1 and self.total_pages > 0

    def as_meta(self):
        return {
            "page": self.current_page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
        }


def total_pages(total_items: int, page_size: int) -> int:
    if total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


def normalize(page_number, page_size):
    """Validates and clamps paging arguments, returning ``(page_number, page_size)``."""
    try:
        page_number = int(page_number) if page_number not in (None, "") else 1
        page_size = int(page_size) if page_size not in (None, "") else settings.BLOG_PAGE_SIZE
    except (TypeError, ValueError):
        raise ValidationError("Page and page size must be integers") from None
    if page_size < 1:
        raise ValidationError("Page size must be at least 1", details={"page_size": [str(page_size)]})
    return max(page_number, 1), min(page_size, settings.BLOG_MAX_PAGE_SIZE)


def page_bounds(page_number: int, page_size: int):
    start = (page_number - 1) * page_size
    return start, start + page_size


def get_page(page_number=1, page_size=None, filters: Optional[store.PostFilter] = None,
             sort: Optional[str] = None) -> Page:
    """
    One page of posts. Without ``filters`` only posts visible to the public
    are listed.
    """
    page_number, page_size = normalize(page_number, page_size)
    if filters is None:
        filters = store.PostFilter.public()
    start, _ = page_bounds(page_number, page_size)
    result = store.list_posts(filters, sort, store.Pagination(offset=start, limit=page_size))
    return Page(
        items=result.items,
        total_pages=total_pages(result.total_count, page_size),
        current_page=page_number,
        total_items=result.total_count,
        page_size=page_size,
    )


def paginate(queryset, page_number=1, page_size=None) -> Page:
    """Same paging rules over any ordered queryset."""
    page_number, page_size = normalize(page_number, page_size)
    total = queryset.count()
    start, end = page_bounds(page_number, page_size)
    return Page(
        items=list(queryset[start:end]),
        total_pages=total_pages(total, page_size),
        current_page=page_number,
        total_items=total,
        page_size=page_size,
    )
