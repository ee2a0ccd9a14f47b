from __future__ import annotations
from math import ceil
from typing import List, Optional, Sequence, TypeVar

from .. import config

T = TypeVar("T")


def total_pages(count: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, ceil(count / page_size))


def clamp_page(page: int, pages: int) -> int:
    return min(max(1, page), max(1, pages))


def page_window(current: int, pages: int, size: int = config.PAGE_WINDOW_SIZE) -> List[int]:
    """Page numbers to show: up to `size` pages around `current`."""
    start = max(1, current - size // 2)
    end = min(pages, start + size - 1)
    start = max(1, end - size + 1)
    return list(range(start, end + 1))


def page_slice(items: Sequence[T], page: int, page_size: int) -> List[T]:
    skip = (page - 1) * page_size
    return list(items[skip:skip + page_size])


def page_for_index(index: int, page_size: int) -> int:
    return index // page_size + 1


def format_pagination_text(
    total: int,
    current_page: int,
    page_size: int,
    pages: int,
    singular: str,
    plural: Optional[str] = None,
) -> str:
    """
    e.g. "0 customers", "1 customer", "7 customers" on a single page,
    "11-20 of 45 customers" otherwise.
    """
    plural = plural or f"{singular}s"
    if total == 0:
        return f"0 {plural}"
    if pages <= 1:
        return f"1 {singular}" if total == 1 else f"{total} {plural}"
    start = (current_page - 1) * page_size + 1
    end = min(current_page * page_size, total)
    return f"{start}-{end} of {total} {plural}"


def format_simple_count(total: int, singular: str, plural: Optional[str] = None) -> str:
    plural = plural or f"{singular}s"
    return f"{total} {singular if total == 1 else plural}"
