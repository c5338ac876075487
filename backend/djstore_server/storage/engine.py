"""
SQLite storage engine for DJStore.

A single SQLite file holds the whole store:
- The shared identifier counter (slot 0)
- One logical collection per entity kind, addressed by a small integer id

Invariants:
    - One SQLite file per store
    - A connection is opened per operation and always closed
    - Only initialize() creates the database file; other access to a
      missing or uninitialized file raises StoreNotFoundError
    - Multi-statement writes run inside BEGIN IMMEDIATE / COMMIT
    - Row payloads are replaced whole, never patched in place

How to change safely:
    - Never renumber collection ids; they are the on-disk address of a table
    - New collections take the next unused id
    - Bump SCHEMA_VERSION when the table layout changes

Table schema:
    id_counter:
        - slot INTEGER PRIMARY KEY (always 0)
        - value INTEGER

    rows:
        - collection_id INTEGER
        - row_key INTEGER
        - payload_json TEXT
        - updated_at INTEGER (Unix ms)
        - PRIMARY KEY (collection_id, row_key)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path

from ..errors import StoreNotFoundError

logger = logging.getLogger(__name__)

# SQLite INTEGER is a signed 64-bit value; no key above this can be stored
MAX_ID = 2**63 - 1


class CollectionId(IntEnum):
    """Stable on-disk identifiers for each collection."""

    ID_COUNTER = 0
    USERS = 1
    SONG_REQUESTS = 2
    TIPS = 3
    EVENTS = 4
    RATINGS = 5
    PLAYLISTS = 6
    LEADERBOARD = 7


def now_ms() -> int:
    """Current time as Unix milliseconds."""
    return int(time.time() * 1000)


class StorageEngine:
    """Owns the SQLite file backing a DJStore.

    Example:
        >>> engine = StorageEngine("/var/lib/djstore")
        >>> engine.initialize()
        >>> with engine.transaction() as conn:
        ...     conn.execute("SELECT value FROM id_counter")
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        db_name: str = "djstore.db",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
    ) -> None:
        """Initialize the storage engine.

        Args:
            data_dir: Directory holding the SQLite file
            db_name: SQLite file name inside data_dir
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
        """
        self.data_dir = Path(data_dir)
        self.db_name = db_name
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages

    @property
    def db_path(self) -> Path:
        """Path to the SQLite file."""
        return self.data_dir / self.db_name

    def exists(self) -> bool:
        return self.db_path.exists()

    @contextmanager
    def connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Open a configured connection to the store database.

        Args:
            create: Whether to create the database file if it does not exist

        Yields:
            SQLite connection in autocommit mode

        Raises:
            StoreNotFoundError: If create=False and the database file or
                its schema is missing
        """
        if not create and not self.db_path.exists():
            raise StoreNotFoundError(
                f"Store database not found: {self.db_path}", db_path=str(self.db_path)
            )

        self.data_dir.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute(f"PRAGMA cache_size = {self.cache_size_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")

            if not create and not self._has_schema(conn):
                raise StoreNotFoundError(
                    f"Store database not initialized: {self.db_path}",
                    db_path=str(self.db_path),
                )

            yield conn
        finally:
            conn.close()

    @staticmethod
    def _has_schema(conn: sqlite3.Connection) -> bool:
        cursor = conn.execute(
            """
            SELECT COUNT(*) FROM sqlite_master
            WHERE type = 'table' AND name IN ('rows', 'id_counter')
            """
        )
        return cursor.fetchone()[0] == 2

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Open a connection and run the body in one write transaction.

        Commits on normal exit, rolls back and re-raises otherwise.
        """
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript(f"""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS id_counter (
                slot INTEGER PRIMARY KEY,
                value INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS rows (
                collection_id INTEGER NOT NULL,
                row_key INTEGER NOT NULL,
                payload_json TEXT NOT NULL,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY (collection_id, row_key)
            ) WITHOUT ROWID;

            INSERT OR IGNORE INTO id_counter (slot, value)
            VALUES ({int(CollectionId.ID_COUNTER)}, 0);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES ({self.SCHEMA_VERSION}, strftime('%s', 'now') * 1000);
        """)

    def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        with self.connection(create=True) as conn:
            self._create_schema(conn)
        logger.info(f"Initialized store database: {self.db_path}")

    def count_rows(self) -> dict[int, int]:
        """Row counts per collection id."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT collection_id, COUNT(*) FROM rows GROUP BY collection_id"
            )
            return {row[0]: row[1] for row in cursor.fetchall()}

    def backup(self, dest_path: str) -> Path:
        """Copy the database to dest_path using the SQLite backup API.

        Args:
            dest_path: Destination file

        Returns:
            Path of the written backup
        """
        dest = Path(dest_path)
        dest.parent.mkdir(parents=True, exist_ok=True)

        with self.connection() as source_conn:
            dest_conn = sqlite3.connect(str(dest))
            try:
                source_conn.backup(dest_conn)
            finally:
                dest_conn.close()

        logger.info(
            "Store backup written",
            extra={"source": str(self.db_path), "dest": str(dest)},
        )
        return dest
