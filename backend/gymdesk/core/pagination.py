"""Offset pagination helpers."""
import math
from typing import Any, List, Optional, Tuple

from gymdesk.core.config import settings

# Largest OFFSET SQLite can bind (signed 64-bit)
MAX_OFFSET = 2 ** 63 - 1


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def clamp_page_params(
    page: Any,
    page_size: Any,
    default_page_size: Optional[int] = None,
    max_page_size: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Coerce raw page/page_size into usable ints.

    Non-numeric values fall back to defaults, values below 1 are clamped to 1
    and page_size is capped at ``max_page_size``. Pages beyond the largest
    bindable offset are clamped to it; they are simply empty.
    """
    default_page_size = default_page_size or settings.DEFAULT_PAGE_SIZE
    max_page_size = max_page_size or settings.MAX_PAGE_SIZE

    page_num = _to_int(page)
    size = _to_int(page_size)
    page_num = 1 if page_num is None else max(page_num, 1)
    size = default_page_size if size is None else max(size, 1)
    size = min(size, max_page_size)
    page_num = min(page_num, MAX_OFFSET // size + 1)
    return page_num, size


class Page:
    """One page of an ordered result set."""
    __slots__ = ("items", "page", "page_size", "total_count")

    def __init__(self, items: List[Any], page: int, page_size: int, total_count: int):
        self.items = items
        self.page = page
        self.page_size = page_size
        self.total_count = total_count

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total_count

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            "current_page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "total_count": self.total_count,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def paginate(query, page: int, page_size: int) -> Page:
    """Run ``query`` (already filtered and ordered) for a single page."""
    total_count = query.order_by(None).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return Page(items, page, page_size, total_count)
