"""
Shared identifier allocator.

One counter issues ids for every entity kind, so ids are unique across
the whole store and not just within a collection.

Invariants:
    - The counter starts at 0 and the first id issued is 1
    - Increment and persist happen in one write transaction
    - An id is never issued twice, even across restarts
    - A crash after increment leaves a gap, never a duplicate
"""

from __future__ import annotations

import logging

from ..errors import IdSpaceExhaustedError
from .engine import MAX_ID, CollectionId, StorageEngine

logger = logging.getLogger(__name__)


class IdAllocator:
    """Monotonic id sequence persisted in the store database.

    Example:
        >>> ids = IdAllocator(engine)
        >>> ids.next_id()
        1
        >>> ids.next_id()
        2
    """

    def __init__(self, engine: StorageEngine) -> None:
        self.engine = engine

    def current(self) -> int:
        """Last issued id (0 if none issued yet)."""
        with self.engine.connection() as conn:
            cursor = conn.execute(
                "SELECT value FROM id_counter WHERE slot = ?",
                (int(CollectionId.ID_COUNTER),),
            )
            row = cursor.fetchone()
            return row[0] if row else 0

    def next_id(self) -> int:
        """Increment the counter and return the new value.

        Raises:
            IdSpaceExhaustedError: If the counter is already at MAX_ID
        """
        with self.engine.transaction() as conn:
            cursor = conn.execute(
                "SELECT value FROM id_counter WHERE slot = ?",
                (int(CollectionId.ID_COUNTER),),
            )
            row = cursor.fetchone()
            current = row[0] if row else 0
            if current >= MAX_ID:
                raise IdSpaceExhaustedError("Identifier space exhausted", last_id=current)

            new_value = current + 1
            conn.execute(
                "INSERT OR REPLACE INTO id_counter (slot, value) VALUES (?, ?)",
                (int(CollectionId.ID_COUNTER), new_value),
            )

        logger.debug("Allocated id", extra={"id": new_value})
        return new_value
