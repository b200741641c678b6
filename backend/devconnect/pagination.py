"""
DevConnect Backend: Pagination Policy
=======================================

What:  Turns raw `page` / `limit` / `offset` inputs into a concrete window.
How:   `limit` is clamped to [MIN_LIMIT, MAX_LIMIT] (DEFAULT_LIMIT when
       missing); `offset` is taken as given or derived from the page.
Who:   Used by every list operation in the services layer.

Example:
    >>> resolve_window(page=3, limit=200)
    PageWindow(page=3, limit=100, offset=200)
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 100
# Largest page or offset accepted; keeps the derived OFFSET within 64 bits
MAX_POSITION = 2**31 - 1


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int
    offset: int

    def has_more(self, total: int) -> bool:
        return self.offset + self.limit < total


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    if limit is None:
        return default
    return max(MIN_LIMIT, min(int(limit), MAX_LIMIT))


def resolve_window(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    default_limit: int = DEFAULT_LIMIT,
) -> PageWindow:
    """
    Build the window for a list request.

    An explicit offset wins over the page; the reported page is then derived
    from the offset so pagination metadata stays consistent.
    """
    effective_limit = clamp_limit(limit, default_limit)
    if offset is not None:
        effective_offset = min(max(0, int(offset)), MAX_POSITION)
        effective_page = page if page is not None else effective_offset // effective_limit + 1
    else:
        effective_page = (
            min(max(DEFAULT_PAGE, int(page)), MAX_POSITION) if page is not None else DEFAULT_PAGE
        )
        effective_offset = (effective_page - 1) * effective_limit
    return PageWindow(page=effective_page, limit=effective_limit, offset=effective_offset)
