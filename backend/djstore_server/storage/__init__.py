"""
Storage module for DJStore - persistent collections and aggregation.

This module handles:
- The SQLite storage engine (one file per store)
- The shared identifier allocator
- Ordered key -> row collections
- Referential integrity checks between collections
- Incremental leaderboard aggregation
- Pagination and predicate search

Invariants:
    - Identifiers come from one counter shared by all collections
    - Foreign keys are validated before an id is allocated
    - Read-modify-write sequences run inside one SQLite transaction

How to change safely:
    - Never renumber CollectionId values
    - Use StorageEngine.transaction() for all multi-statement writes
"""

from .collection import Collection
from .engine import CollectionId, StorageEngine
from .id_allocator import IdAllocator
from .integrity import count_references, exists_in, require_exists
from .leaderboard import LeaderboardAggregator, running_mean
from .pagination import find_first, paginate, search_by

__all__ = [
    "Collection",
    "CollectionId",
    "StorageEngine",
    "IdAllocator",
    "exists_in",
    "require_exists",
    "count_references",
    "LeaderboardAggregator",
    "running_mean",
    "paginate",
    "search_by",
    "find_first",
]
