"""
Pagination and predicate search over collections.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Callable, TypeVar

from .collection import Collection

T = TypeVar("T")


def paginate(items: Sequence[T], page: int, per_page: int) -> list[T]:
    """Slice items into 1-based pages.

    Pages before the first are treated as the first page. An out-of-range
    page, or a non-positive per_page, gives an empty list.

    Example:
        >>> paginate(list(range(7)), page=2, per_page=3)
        [3, 4, 5]
        >>> paginate(list(range(7)), page=10, per_page=3)
        []
    """
    if per_page <= 0:
        return []
    start = max(0, page - 1) * per_page
    return list(items[start:start + per_page])


def search_by(
    collection: Collection[T],  # type: ignore[type-var]
    predicate: Callable[[T], bool],
    conn: sqlite3.Connection | None = None,
) -> list[T]:
    """Rows matching predicate, in ascending key order."""
    return [row for _, row in collection.iterate(conn=conn) if predicate(row)]


def find_first(
    collection: Collection[T],  # type: ignore[type-var]
    predicate: Callable[[T], bool],
    conn: sqlite3.Connection | None = None,
) -> T | None:
    """Lowest-keyed row matching predicate, or None."""
    for _, row in collection.iterate(conn=conn):
        if predicate(row):
            return row
    return None
