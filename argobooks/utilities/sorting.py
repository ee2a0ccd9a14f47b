from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from ..domain.enums import SortDirection

T = TypeVar("T")
KeySelector = Callable[[T], Any]


def _null_safe(selector: KeySelector) -> Callable[[Any], tuple]:
    # None keys sort before any value
    def key(item: Any) -> tuple:
        value = selector(item)
        if value is None:
            return (0, 0)
        if isinstance(value, str):
            return (1, value.lower())
        return (1, value)
    return key


def apply_sort(
    items: Sequence[T],
    column: Optional[str],
    direction: SortDirection,
    selectors: Dict[str, KeySelector],
    default: Optional[KeySelector] = None,
) -> List[T]:
    """
    Order `items` by the selector registered for `column`.
    Without a usable column or direction the default selector (if any) decides,
    otherwise the input order is kept. Sorting is stable.
    """
    items = list(items)
    if not items:
        return items

    selector = selectors.get(column) if column else None
    if direction == SortDirection.NONE or selector is None:
        if default is None:
            return items
        return sorted(items, key=_null_safe(default))

    return sorted(items, key=_null_safe(selector), reverse=direction == SortDirection.DESCENDING)


def next_direction(current: SortDirection) -> SortDirection:
    if current == SortDirection.NONE:
        return SortDirection.ASCENDING
    if current == SortDirection.ASCENDING:
        return SortDirection.DESCENDING
    return SortDirection.NONE
