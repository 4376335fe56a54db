"""
Pagination
==========

Page/limit handling shared by the ticket and user list endpoints.
"""

from dataclasses import dataclass
from typing import Any, Optional

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageRequest:
    """A page request with page >= 1 and 1 <= limit <= MAX_PAGE_SIZE."""
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_query(cls, page: Optional[Any], limit: Optional[Any]) -> "PageRequest":
        """Clamp raw query values; anything unparsable falls back to defaults."""
        return cls(
            page=max(_to_int(page, 1), 1),
            limit=min(max(_to_int(limit, DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE),
        )


@dataclass(frozen=True)
class PageWindow:
    page: int
    total_pages: int
    offset: int
    limit: int
    total: int


def page_window(request: PageRequest, total: int) -> PageWindow:
    """Clamp the requested page to the available pages (always at least one)."""
    total_pages = max((total + request.limit - 1) // request.limit, 1)
    safe_page = min(request.page, total_pages)
    return PageWindow(
        page=safe_page,
        total_pages=total_pages,
        offset=(safe_page - 1) * request.limit,
        limit=request.limit,
        total=total,
    )


def _to_int(value: Optional[Any], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
