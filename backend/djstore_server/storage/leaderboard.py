"""
Incremental leaderboard aggregation.

Each DJ's leaderboard row holds a running mean of ratings, the number of
ratings folded in, and a running tip total. Updates fold one new value
into the stored aggregate; rating history is never rescanned.

Invariants:
    - Rows are created only by init_entry, never by a fold
    - avg_rating == mean of all folded ratings (within float tolerance)
    - total_ratings counts folds
    - Each fold is a single read-modify-write transaction

How to change safely:
    - Keep RATING_MIN/RATING_MAX in step with create_rating validation
    - Do not recompute from the ratings collection here; ratings are not
      linked to dj_id
"""

from __future__ import annotations

import logging

from ..errors import AlreadyExistsError, InvalidInputError, NotFoundError
from ..models import LeaderboardEntry
from .collection import Collection

logger = logging.getLogger(__name__)

RATING_MIN = 0
RATING_MAX = 5


def running_mean(avg: float, count: int, value: float) -> float:
    """Fold value into a mean of count samples."""
    return (avg * count + value) / (count + 1)


def validate_rating(rating: int) -> None:
    if not RATING_MIN <= rating <= RATING_MAX:
        raise InvalidInputError(
            f"Rating must be between {RATING_MIN} and {RATING_MAX}",
            field_name="rating",
        )


class LeaderboardAggregator:
    """Maintains per-DJ running aggregates.

    Example:
        >>> board = LeaderboardAggregator(leaderboard_collection)
        >>> _ = board.init_entry(7, "DJ Bob")
        >>> _ = board.fold_rating(7, 4)
        >>> board.fold_rating(7, 5)
        LeaderboardEntry(dj_id=7, dj_name='DJ Bob', total_tips=0, total_ratings=2, avg_rating=4.5)
    """

    def __init__(self, entries: Collection[LeaderboardEntry]) -> None:
        self.entries = entries

    def init_entry(self, dj_id: int, dj_name: str) -> LeaderboardEntry:
        """Create an empty leaderboard row for a DJ.

        Raises:
            InvalidInputError: If dj_name is empty
            AlreadyExistsError: If dj_id already has a row
        """
        if not dj_name:
            raise InvalidInputError(field_name="dj_name")

        with self.entries.engine.transaction() as conn:
            if self.entries.contains(dj_id, conn=conn):
                raise AlreadyExistsError(
                    f"Leaderboard entry already exists for DJ: {dj_id}",
                    resource_type="LeaderboardEntry",
                    resource_id=dj_id,
                )
            entry = LeaderboardEntry(dj_id=dj_id, dj_name=dj_name)
            self.entries.insert(dj_id, entry, conn=conn)

        logger.debug("Initialized leaderboard entry", extra={"dj_id": dj_id, "dj_name": dj_name})
        return entry

    def fold_rating(self, dj_id: int, new_rating: int) -> LeaderboardEntry:
        """Fold one rating into a DJ's running average.

        Raises:
            InvalidInputError: If new_rating is outside 0..5
            NotFoundError: If dj_id has no leaderboard row
        """
        validate_rating(new_rating)

        with self.entries.engine.transaction() as conn:
            entry = self._require(dj_id, conn)
            entry.avg_rating = running_mean(entry.avg_rating, entry.total_ratings, new_rating)
            entry.total_ratings += 1
            self.entries.insert(dj_id, entry, conn=conn)

        logger.debug(
            "Folded rating",
            extra={
                "dj_id": dj_id,
                "rating": new_rating,
                "total_ratings": entry.total_ratings,
                "avg_rating": entry.avg_rating,
            },
        )
        return entry

    def fold_tip(self, dj_id: int, amount: int) -> LeaderboardEntry:
        """Add a tip amount to a DJ's running total.

        Raises:
            InvalidInputError: If amount is not positive
            NotFoundError: If dj_id has no leaderboard row
        """
        if amount <= 0:
            raise InvalidInputError("Tip amount must be positive", field_name="amount")

        with self.entries.engine.transaction() as conn:
            entry = self._require(dj_id, conn)
            entry.total_tips += amount
            self.entries.insert(dj_id, entry, conn=conn)

        logger.debug(
            "Folded tip",
            extra={"dj_id": dj_id, "amount": amount, "total_tips": entry.total_tips},
        )
        return entry

    def _require(self, dj_id: int, conn) -> LeaderboardEntry:
        entry = self.entries.get(dj_id, conn=conn)
        if entry is None:
            raise NotFoundError(
                f"DJ not found in leaderboard: {dj_id}",
                resource_type="LeaderboardEntry",
                resource_id=dj_id,
            )
        return entry

    def ranked(self) -> list[LeaderboardEntry]:
        """Entries ordered by average rating (highest first), then dj_id."""
        return sorted(self.entries.values(), key=lambda e: (-e.avg_rating, e.dj_id))
