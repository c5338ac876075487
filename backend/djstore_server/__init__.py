"""
DJStore Server - persistent entity store for a DJ event and tipping app.

This package implements the storage core behind the app:
- Users, song requests, tips, events, ratings and playlists as
  independently keyed collections
- One shared monotonic identifier allocator for every entity kind
- Referential integrity checks before dependent rows are created
- An incremental DJ leaderboard (running mean of ratings, tip totals)
- SQLite as the durable store, surviving process restarts

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Caller    │────▶│   DjStore   │────▶│   IdAllocator   │
    │ (API layer) │     │  (facade)   │     └────────┬────────┘
    └─────────────┘     └──────┬──────┘              │
                               │                     │
                ┌──────────────┼──────────────┐      │
                ▼              ▼              ▼      ▼
          ┌──────────┐  ┌────────────┐  ┌──────────────────┐
          │Integrity │  │Leaderboard │  │   Collections    │
          │ checker  │  │ aggregator │  │ (rows by key)    │
          └──────────┘  └────────────┘  └────────┬─────────┘
                                                 ▼
                                          ┌────────────┐
                                          │   SQLite   │
                                          └────────────┘

Invariants:
    - Identifiers are unique across all entity kinds and never reused
    - Foreign keys are checked before an identifier is allocated
    - Leaderboard rows are created explicitly, never by a rating fold
    - The counter and every collection live in one SQLite file

How to change safely:
    - Collection ids are on-disk addresses; never renumber them
    - New entity fields need defaults so existing rows still decode
"""

from ._version import __version__
from .errors import (
    AlreadyExistsError,
    IdSpaceExhaustedError,
    InvalidInputError,
    NotFoundError,
    StoreError,
    StoreNotFoundError,
    UnauthorizedError,
)
from .store import DjStore

__all__ = [
    "__version__",
    "DjStore",
    "StoreError",
    "NotFoundError",
    "InvalidInputError",
    "AlreadyExistsError",
    "UnauthorizedError",
    "StoreNotFoundError",
    "IdSpaceExhaustedError",
]
