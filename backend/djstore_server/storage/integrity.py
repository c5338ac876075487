"""
Referential integrity checks between collections.

Foreign keys are checked once, before the dependent row's id is
allocated. They are lookups, not ownership links: later deletes of the
referenced row are not prevented and do not cascade.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable

from ..errors import NotFoundError
from .collection import Collection

logger = logging.getLogger(__name__)


def exists_in(
    collection: Collection[Any],
    foreign_key: int,
    conn: sqlite3.Connection | None = None,
) -> bool:
    """Whether foreign_key names an existing row in collection."""
    return collection.contains(foreign_key, conn=conn)


def require_exists(
    collection: Collection[Any],
    foreign_key: int,
    entity_name: str,
    conn: sqlite3.Connection | None = None,
) -> None:
    """Raise NotFoundError unless foreign_key exists in collection.

    Args:
        collection: Referenced collection
        foreign_key: Key to look up
        entity_name: Name used in the error message ("User", "Event")

    Raises:
        NotFoundError: "<entity_name> not found"
    """
    if not exists_in(collection, foreign_key, conn=conn):
        raise NotFoundError(
            f"{entity_name} not found",
            resource_type=entity_name,
            resource_id=foreign_key,
        )


def count_references(
    collection: Collection[Any],
    refers_to: Callable[[Any], bool],
    conn: sqlite3.Connection | None = None,
) -> int:
    """Number of rows in collection for which refers_to(row) is true."""
    return sum(1 for row in collection.values(conn=conn) if refers_to(row))
