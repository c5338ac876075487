"""
Ordered key -> row collections over the store database.

Each collection is a slice of the shared rows table selected by its
collection id. Rows are JSON-encoded entity dataclasses.

Invariants:
    - Iteration is in ascending key order
    - insert() replaces the whole row (used for updates as well)
    - A collection never reads or writes another collection's rows
    - Keys outside 0..MAX_ID are never stored; lookups of them miss

How to change safely:
    - Keep the entity's to_dict/from_dict backward compatible
    - Pass an open transaction connection for read-modify-write sequences
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, Protocol, TypeVar

from ..errors import InvalidInputError
from .engine import MAX_ID, CollectionId, StorageEngine, now_ms

logger = logging.getLogger(__name__)


class Row(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


R = TypeVar("R", bound=Row)


def _storable(key: int) -> bool:
    return 0 <= key <= MAX_ID


class Collection(Generic[R]):
    """Ordered key -> row store for one entity kind.

    Every method accepts an optional connection so several steps can
    share one transaction; without one, each call opens its own.

    Attributes:
        engine: Storage engine holding the database
        collection_id: On-disk collection identifier
        row_type: Entity dataclass with to_dict/from_dict
        name: Human-readable collection name
    """

    def __init__(
        self,
        engine: StorageEngine,
        collection_id: CollectionId,
        row_type: type[R],
        name: str,
    ) -> None:
        self.engine = engine
        self.collection_id = collection_id
        self.row_type = row_type
        self.name = name

    @contextmanager
    def _use(self, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
        else:
            with self.engine.connection() as own:
                yield own

    def _decode(self, payload_json: str) -> R:
        return self.row_type.from_dict(json.loads(payload_json))  # type: ignore[attr-defined]

    def get(self, key: int, conn: sqlite3.Connection | None = None) -> R | None:
        """Get a row by key.

        Returns:
            Row or None if not found
        """
        if not _storable(key):
            return None
        with self._use(conn) as c:
            cursor = c.execute(
                "SELECT payload_json FROM rows WHERE collection_id = ? AND row_key = ?",
                (int(self.collection_id), key),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return self._decode(row["payload_json"])

    def contains(self, key: int, conn: sqlite3.Connection | None = None) -> bool:
        if not _storable(key):
            return False
        with self._use(conn) as c:
            cursor = c.execute(
                "SELECT 1 FROM rows WHERE collection_id = ? AND row_key = ?",
                (int(self.collection_id), key),
            )
            return cursor.fetchone() is not None

    def insert(self, key: int, row: R, conn: sqlite3.Connection | None = None) -> None:
        """Write a row, replacing any existing row with the same key.

        Raises:
            InvalidInputError: If key is outside 0..MAX_ID
        """
        if not _storable(key):
            raise InvalidInputError(f"Key out of range for {self.name}: {key}", field_name="key")
        with self._use(conn) as c:
            c.execute(
                """
                INSERT OR REPLACE INTO rows (collection_id, row_key, payload_json, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (int(self.collection_id), key, json.dumps(row.to_dict()), now_ms()),
            )

        logger.debug(
            "Wrote row",
            extra={"collection": self.name, "key": key},
        )

    def remove(self, key: int, conn: sqlite3.Connection | None = None) -> R | None:
        """Delete a row.

        Returns:
            The removed row, or None if the key was absent
        """
        if not _storable(key):
            return None
        with self._use(conn) as c:
            existing = self.get(key, conn=c)
            if existing is None:
                return None
            c.execute(
                "DELETE FROM rows WHERE collection_id = ? AND row_key = ?",
                (int(self.collection_id), key),
            )

        logger.debug(
            "Removed row",
            extra={"collection": self.name, "key": key},
        )
        return existing

    def iterate(self, conn: sqlite3.Connection | None = None) -> list[tuple[int, R]]:
        """All (key, row) pairs in ascending key order."""
        with self._use(conn) as c:
            cursor = c.execute(
                """
                SELECT row_key, payload_json FROM rows
                WHERE collection_id = ?
                ORDER BY row_key ASC
                """,
                (int(self.collection_id),),
            )
            return [
                (row["row_key"], self._decode(row["payload_json"]))
                for row in cursor.fetchall()
            ]

    def values(self, conn: sqlite3.Connection | None = None) -> list[R]:
        return [row for _, row in self.iterate(conn=conn)]

    def count(self, conn: sqlite3.Connection | None = None) -> int:
        with self._use(conn) as c:
            cursor = c.execute(
                "SELECT COUNT(*) FROM rows WHERE collection_id = ?",
                (int(self.collection_id),),
            )
            return cursor.fetchone()[0]

    def is_empty(self, conn: sqlite3.Connection | None = None) -> bool:
        return self.count(conn=conn) == 0
