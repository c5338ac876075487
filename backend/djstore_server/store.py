"""
DJStore facade - one method per store operation.

DjStore wires the storage engine, the shared id allocator, the seven
collections and the leaderboard aggregator together, and implements the
create / update / delete / query operations of the DJ tipping backend.

Invariants:
    - Every create validates fields, then foreign keys, then allocates an
      id, then inserts; a rejected create never consumes an id
    - Mutations hold the store lock for their full duration
    - "List all" queries raise NotFoundError on empty results;
      search/filter queries return an empty list
    - Roles are stored but never checked here
    - Deletes do not cascade; dangling references are logged

How to change safely:
    - Add operations as new methods; keep existing error kinds stable
    - Keep validation ahead of id allocation
    - Route every read-modify-write through engine.transaction()
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, TypeVar

from .config import PaginationConfig, StoreConfig
from .errors import InvalidInputError, NotFoundError
from .models import (
    Event,
    LeaderboardEntry,
    Playlist,
    Rating,
    RequestStatus,
    SongRequest,
    Tip,
    TipStatus,
    User,
    UserRole,
    UserStatus,
)
from .payloads import (
    EventPayload,
    PlaylistPayload,
    RatingPayload,
    SongRequestPayload,
    TipPayload,
    UserPayload,
)
from .storage import (
    Collection,
    CollectionId,
    IdAllocator,
    LeaderboardAggregator,
    StorageEngine,
    count_references,
    find_first,
    paginate,
    require_exists,
    search_by,
)
from .storage.engine import now_ms
from .storage.leaderboard import validate_rating

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTION_NAMES = {
    CollectionId.USERS: "users",
    CollectionId.SONG_REQUESTS: "song_requests",
    CollectionId.TIPS: "tips",
    CollectionId.EVENTS: "events",
    CollectionId.RATINGS: "ratings",
    CollectionId.PLAYLISTS: "playlists",
    CollectionId.LEADERBOARD: "leaderboard",
}


class DjStore:
    """Persistent store for users, requests, tips, events, ratings,
    playlists and the DJ leaderboard.

    Attributes:
        engine: SQLite storage engine
        ids: Shared identifier allocator
        users, song_requests, tips, events, ratings, playlists, leaderboard:
            Entity collections
        board: Leaderboard aggregator

    Example:
        >>> store = DjStore(StorageEngine("/var/lib/djstore"))
        >>> await store.initialize()
        >>> alice = await store.create_user(
        ...     UserPayload(name="Alice", contact="a@x.com", role=UserRole.REGULAR_USER)
        ... )
        >>> alice.id
        1
    """

    def __init__(
        self,
        engine: StorageEngine,
        ids: IdAllocator | None = None,
        pagination: PaginationConfig | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            engine: Storage engine for the store database
            ids: Identifier allocator (one over the same engine if not provided)
            pagination: Paging limits for list queries
        """
        self.engine = engine
        self.ids = ids or IdAllocator(engine)
        self.pagination = pagination or PaginationConfig()
        self._lock = asyncio.Lock()

        self.users: Collection[User] = Collection(
            engine, CollectionId.USERS, User, "users"
        )
        self.song_requests: Collection[SongRequest] = Collection(
            engine, CollectionId.SONG_REQUESTS, SongRequest, "song_requests"
        )
        self.tips: Collection[Tip] = Collection(engine, CollectionId.TIPS, Tip, "tips")
        self.events: Collection[Event] = Collection(
            engine, CollectionId.EVENTS, Event, "events"
        )
        self.ratings: Collection[Rating] = Collection(
            engine, CollectionId.RATINGS, Rating, "ratings"
        )
        self.playlists: Collection[Playlist] = Collection(
            engine, CollectionId.PLAYLISTS, Playlist, "playlists"
        )
        self.leaderboard: Collection[LeaderboardEntry] = Collection(
            engine, CollectionId.LEADERBOARD, LeaderboardEntry, "leaderboard"
        )
        self.board = LeaderboardAggregator(self.leaderboard)

    @classmethod
    def from_config(cls, config: StoreConfig) -> DjStore:
        """Build a store from loaded configuration."""
        engine = StorageEngine(
            data_dir=config.storage.data_dir,
            db_name=config.storage.db_name,
            wal_mode=config.storage.wal_mode,
            busy_timeout_ms=config.storage.busy_timeout_ms,
            cache_size_pages=config.storage.cache_size_pages,
        )
        return cls(engine, pagination=config.pagination)

    async def initialize(self) -> None:
        """Create the database and schema if they don't exist."""
        async with self._lock:
            self.engine.initialize()

    # =========================================================================
    # Users
    # =========================================================================

    async def create_user(self, payload: UserPayload) -> User:
        """Create a user with zero points and Active status.

        Raises:
            InvalidInputError: If name or contact is empty
        """
        if not payload.name or not payload.contact:
            raise InvalidInputError(field_name="name" if not payload.name else "contact")

        async with self._lock:
            user = User(
                id=self.ids.next_id(),
                name=payload.name,
                contact=payload.contact,
                status=UserStatus.ACTIVE,
                role=payload.role,
                points=0,
                created_at=now_ms(),
            )
            self.users.insert(user.id, user)

        logger.debug("Created user", extra={"user_id": user.id, "role": user.role.value})
        return user

    async def get_user(self, user_id: int) -> User:
        return self._get_or_raise(self.users, user_id, "User")

    async def delete_user(self, user_id: int) -> None:
        """Delete a user.

        Song requests, tips and ratings that reference the user are kept.

        Raises:
            NotFoundError: If user_id is unknown
        """
        async with self._lock:
            removed = self.users.remove(user_id)
            if removed is None:
                raise NotFoundError("User not found", resource_type="User", resource_id=user_id)

            dangling = sum(
                count_references(collection, lambda row: row.user_id == user_id)
                for collection in (self.song_requests, self.tips, self.ratings)
            )

        if dangling:
            logger.warning(
                f"Deleted user {user_id} still referenced by {dangling} row(s)",
                extra={"user_id": user_id, "dangling": dangling},
            )
        else:
            logger.debug("Deleted user", extra={"user_id": user_id})

    async def deactivate_user(self, user_id: int) -> User:
        """Mark a user Deactivated.

        Raises:
            NotFoundError: If user_id is unknown
        """
        def apply(user: User) -> None:
            user.status = UserStatus.DEACTIVATED

        return await self._update_row(self.users, user_id, "User", apply)

    async def update_user_points(self, user_id: int, points: int) -> bool:
        """Award points to a user.

        Args:
            user_id: User to award
            points: Non-negative amount added to the user's points

        Returns:
            True if the user was updated, False if user_id is unknown

        Raises:
            InvalidInputError: If points is negative
        """
        if points < 0:
            raise InvalidInputError("Points must not be negative", field_name="points")

        async with self._lock:
            with self.engine.transaction() as conn:
                user = self.users.get(user_id, conn=conn)
                if user is None:
                    return False
                user.points += points
                self.users.insert(user_id, user, conn=conn)

        logger.debug(
            "Awarded points",
            extra={"user_id": user_id, "points": points, "total": user.points},
        )
        return True

    async def search_users_by_role(self, role: UserRole) -> list[User]:
        """Users with the given role; empty if none."""
        return search_by(self.users, lambda user: user.role == role)

    # =========================================================================
    # Song requests
    # =========================================================================

    async def create_song_request(self, payload: SongRequestPayload) -> SongRequest:
        """Create a Pending song request.

        Raises:
            InvalidInputError: If song_name is empty
            NotFoundError: If user_id is unknown
        """
        if not payload.song_name:
            raise InvalidInputError(field_name="song_name")

        async with self._lock:
            require_exists(self.users, payload.user_id, "User")
            request = SongRequest(
                id=self.ids.next_id(),
                user_id=payload.user_id,
                song_name=payload.song_name,
                status=RequestStatus.PENDING,
                created_at=now_ms(),
            )
            self.song_requests.insert(request.id, request)

        logger.debug(
            "Created song request",
            extra={"request_id": request.id, "user_id": request.user_id},
        )
        return request

    async def get_song_request(self, request_id: int) -> SongRequest:
        return self._get_or_raise(self.song_requests, request_id, "Song request")

    async def mark_song_request_played(self, request_id: int) -> SongRequest:
        """Move a song request to Played."""
        def apply(request: SongRequest) -> None:
            request.status = RequestStatus.PLAYED

        return await self._update_row(self.song_requests, request_id, "Song request", apply)

    async def get_song_requests_by_user(self, user_id: int) -> list[SongRequest]:
        return search_by(self.song_requests, lambda request: request.user_id == user_id)

    # =========================================================================
    # Tips
    # =========================================================================

    async def create_tip(self, payload: TipPayload) -> Tip:
        """Create a Pending tip.

        Raises:
            InvalidInputError: If amount is not positive or dj_name is empty
            NotFoundError: If user_id is unknown
        """
        if payload.amount <= 0:
            raise InvalidInputError(field_name="amount")
        if not payload.dj_name:
            raise InvalidInputError(field_name="dj_name")

        async with self._lock:
            require_exists(self.users, payload.user_id, "User")
            tip = Tip(
                id=self.ids.next_id(),
                user_id=payload.user_id,
                dj_name=payload.dj_name,
                amount=payload.amount,
                status=TipStatus.PENDING,
                created_at=now_ms(),
            )
            self.tips.insert(tip.id, tip)

        logger.debug(
            "Created tip",
            extra={"tip_id": tip.id, "user_id": tip.user_id, "amount": tip.amount},
        )
        return tip

    async def get_tip(self, tip_id: int) -> Tip:
        return self._get_or_raise(self.tips, tip_id, "Tip")

    async def complete_tip(self, tip_id: int) -> Tip:
        """Move a tip to Completed."""
        def apply(tip: Tip) -> None:
            tip.status = TipStatus.COMPLETED

        return await self._update_row(self.tips, tip_id, "Tip", apply)

    # =========================================================================
    # Events
    # =========================================================================

    async def create_event(self, payload: EventPayload) -> Event:
        """Create an event.

        Raises:
            InvalidInputError: If a text field is empty, capacity is not
                positive, or scheduled_at is negative
        """
        for name in ("event_name", "dj_name", "venue"):
            if not getattr(payload, name):
                raise InvalidInputError(field_name=name)
        if payload.capacity <= 0:
            raise InvalidInputError(field_name="capacity")
        if payload.scheduled_at < 0:
            raise InvalidInputError(field_name="scheduled_at")

        async with self._lock:
            event = Event(
                id=self.ids.next_id(),
                event_name=payload.event_name,
                dj_name=payload.dj_name,
                venue=payload.venue,
                capacity=payload.capacity,
                scheduled_at=payload.scheduled_at,
                created_at=now_ms(),
            )
            self.events.insert(event.id, event)

        logger.debug("Created event", extra={"event_id": event.id, "event_name": event.event_name})
        return event

    async def get_event(self, event_id: int) -> Event:
        return self._get_or_raise(self.events, event_id, "Event")

    async def delete_event(self, event_id: int) -> None:
        """Delete an event. Its playlists are kept.

        Raises:
            NotFoundError: If event_id is unknown
        """
        async with self._lock:
            removed = self.events.remove(event_id)
            if removed is None:
                raise NotFoundError("Event not found", resource_type="Event", resource_id=event_id)
            dangling = count_references(
                self.playlists, lambda playlist: playlist.event_id == event_id
            )

        if dangling:
            logger.warning(
                f"Deleted event {event_id} still referenced by {dangling} playlist(s)",
                extra={"event_id": event_id, "dangling": dangling},
            )
        else:
            logger.debug("Deleted event", extra={"event_id": event_id})

    async def get_all_events(self) -> list[Event]:
        """All events in creation order.

        Raises:
            NotFoundError: If there are no events
        """
        events = self.events.values()
        if not events:
            raise NotFoundError("No events found", resource_type="Event")
        return events

    async def get_event_by_name(self, event_name: str) -> Event:
        """First event (lowest id) with this exact name.

        Raises:
            NotFoundError: If no event matches
        """
        event = find_first(self.events, lambda e: e.event_name == event_name)
        if event is None:
            raise NotFoundError("Event not found", resource_type="Event", resource_id=event_name)
        return event

    async def get_paginated_events(self, page: int, per_page: int | None = None) -> list[Event]:
        """One page of events in creation order.

        per_page defaults to the configured page size and is capped at the
        configured maximum. A page past the end gives an empty list.

        Raises:
            NotFoundError: If there are no events at all
        """
        events = await self.get_all_events()
        if per_page is None:
            per_page = self.pagination.default_per_page
        per_page = min(per_page, self.pagination.max_per_page)
        return paginate(events, page, per_page)

    # =========================================================================
    # Ratings
    # =========================================================================

    async def create_rating(self, payload: RatingPayload) -> Rating:
        """Create a rating.

        The leaderboard is not touched; callers fold the rating with
        update_leaderboard_after_rating once they know the DJ's id.

        Raises:
            InvalidInputError: If dj_name is empty or rating is outside 0..5
            NotFoundError: If user_id is unknown
        """
        if not payload.dj_name:
            raise InvalidInputError(field_name="dj_name")
        validate_rating(payload.rating)

        async with self._lock:
            require_exists(self.users, payload.user_id, "User")
            rating = Rating(
                id=self.ids.next_id(),
                user_id=payload.user_id,
                dj_name=payload.dj_name,
                rating=payload.rating,
                review=payload.review,
                created_at=now_ms(),
            )
            self.ratings.insert(rating.id, rating)

        logger.debug(
            "Created rating",
            extra={"rating_id": rating.id, "dj_name": rating.dj_name, "rating": rating.rating},
        )
        return rating

    async def get_rating(self, rating_id: int) -> Rating:
        return self._get_or_raise(self.ratings, rating_id, "Rating")

    async def get_ratings_for_dj(self, dj_name: str) -> list[Rating]:
        return search_by(self.ratings, lambda rating: rating.dj_name == dj_name)

    # =========================================================================
    # Playlists
    # =========================================================================

    async def create_playlist(self, payload: PlaylistPayload) -> Playlist:
        """Create a playlist for an existing event.

        Raises:
            InvalidInputError: If both dj_name and song_list are empty
            NotFoundError: If event_id is unknown
        """
        if not payload.dj_name and not payload.song_list:
            raise InvalidInputError()

        async with self._lock:
            require_exists(self.events, payload.event_id, "Event")
            playlist = Playlist(
                id=self.ids.next_id(),
                dj_name=payload.dj_name,
                event_id=payload.event_id,
                song_list=list(payload.song_list),
                created_at=now_ms(),
            )
            self.playlists.insert(playlist.id, playlist)

        logger.debug(
            "Created playlist",
            extra={"playlist_id": playlist.id, "event_id": playlist.event_id},
        )
        return playlist

    async def get_playlist(self, playlist_id: int) -> Playlist:
        return self._get_or_raise(self.playlists, playlist_id, "Playlist")

    async def get_playlist_by_dj_name(self, dj_name: str) -> list[Playlist]:
        """Playlists owned by a DJ.

        Raises:
            NotFoundError: If the DJ has no playlists
        """
        playlists = search_by(self.playlists, lambda p: p.dj_name == dj_name)
        if not playlists:
            raise NotFoundError(
                f"No playlists found for DJ: {dj_name}",
                resource_type="Playlist",
                resource_id=dj_name,
            )
        return playlists

    async def get_playlist_by_event_id(self, event_id: int) -> list[Playlist]:
        """Playlists attached to an event.

        Raises:
            NotFoundError: If the event has no playlists
        """
        playlists = search_by(self.playlists, lambda p: p.event_id == event_id)
        if not playlists:
            raise NotFoundError(
                f"No playlists found for event ID: {event_id}",
                resource_type="Playlist",
                resource_id=event_id,
            )
        return playlists

    # =========================================================================
    # Leaderboard
    # =========================================================================

    async def init_leaderboard_entry(self, dj_id: int, dj_name: str) -> LeaderboardEntry:
        """Create an empty leaderboard row for a DJ.

        Raises:
            InvalidInputError: If dj_name is empty
            AlreadyExistsError: If dj_id already has a row
        """
        async with self._lock:
            return self.board.init_entry(dj_id, dj_name)

    async def update_leaderboard_after_rating(self, dj_id: int, new_rating: int) -> None:
        """Fold a rating into the DJ's running average.

        Raises:
            InvalidInputError: If new_rating is outside 0..5
            NotFoundError: If dj_id has no leaderboard row
        """
        async with self._lock:
            self.board.fold_rating(dj_id, new_rating)

    async def update_leaderboard_after_tip(self, dj_id: int, amount: int) -> None:
        """Add a tip amount to the DJ's tip total.

        Raises:
            InvalidInputError: If amount is not positive
            NotFoundError: If dj_id has no leaderboard row
        """
        async with self._lock:
            self.board.fold_tip(dj_id, amount)

    async def get_leaderboard_entry(self, dj_id: int) -> LeaderboardEntry:
        return self._get_or_raise(self.leaderboard, dj_id, "DJ")

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        """All DJs, best average rating first."""
        return self.board.ranked()

    async def search_djs(
        self,
        genre: str,
        min_rating: float,
        location: str,
    ) -> list[LeaderboardEntry]:
        """DJs whose average rating is at least min_rating.

        genre and location are accepted for interface compatibility and
        do not filter; leaderboard rows carry neither.
        """
        return search_by(self.leaderboard, lambda entry: entry.avg_rating >= min_rating)

    # =========================================================================
    # Administration
    # =========================================================================

    async def stats(self) -> dict[str, int]:
        """Row count per collection plus the last issued id."""
        counts = self.engine.count_rows()
        stats = {
            name: counts.get(int(collection_id), 0)
            for collection_id, name in COLLECTION_NAMES.items()
        }
        stats["id_counter"] = self.ids.current()
        return stats

    async def backup(self, dest_path: str) -> Path:
        """Write a consistent copy of the store database to dest_path."""
        async with self._lock:
            return self.engine.backup(dest_path)

    def collection(self, name: str) -> Collection[Any]:
        """Look up a collection by its name ("users", "events", ...).

        Raises:
            KeyError: If no collection has that name
        """
        if name not in COLLECTION_NAMES.values():
            raise KeyError(f"Unknown collection: {name}")
        return getattr(self, name)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_or_raise(self, collection: Collection[T], key: int, entity_name: str) -> T:  # type: ignore[type-var]
        row = collection.get(key)
        if row is None:
            raise NotFoundError(
                f"{entity_name} not found",
                resource_type=entity_name,
                resource_id=key,
            )
        return row

    async def _update_row(
        self,
        collection: Collection[T],  # type: ignore[type-var]
        key: int,
        entity_name: str,
        apply: Callable[[T], None],
    ) -> T:
        """Read a row, apply a change and write it back in one transaction."""
        async with self._lock:
            with self.engine.transaction() as conn:
                row = collection.get(key, conn=conn)
                if row is None:
                    raise NotFoundError(
                        f"{entity_name} not found",
                        resource_type=entity_name,
                        resource_id=key,
                    )
                apply(row)
                collection.insert(key, row, conn=conn)

        logger.debug(
            "Updated row",
            extra={"collection": collection.name, "key": key},
        )
        return row
