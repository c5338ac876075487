"""
Integration tests for DjStore operations.

Tests cover:
- Global id ordering across entity kinds
- Field validation and foreign-key checks on create
- Status transitions and point awards
- Leaderboard folds through the store
- Query empty-result policy (NotFound vs empty list)
"""

import statistics
import tempfile

import pytest

from backend.djstore_server.config import PaginationConfig
from backend.djstore_server.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from backend.djstore_server.models import RequestStatus, TipStatus, UserRole, UserStatus
from backend.djstore_server.payloads import (
    EventPayload,
    PlaylistPayload,
    RatingPayload,
    SongRequestPayload,
    TipPayload,
    UserPayload,
)
from backend.djstore_server.storage.engine import StorageEngine
from backend.djstore_server.store import DjStore

SCHEDULED_AT = 1_767_225_600_000
BIG_ID = 2**64 - 1


def user_payload(name="Alice", contact="a@x.com", role=UserRole.REGULAR_USER):
    return UserPayload(name=name, contact=contact, role=role)


def event_payload(event_name="Rave", dj_name="DJ Bob", venue="Warehouse", capacity=100):
    return EventPayload(
        event_name=event_name,
        dj_name=dj_name,
        venue=venue,
        capacity=capacity,
        scheduled_at=SCHEDULED_AT,
    )


class TestDjStore:
    """Tests for DjStore."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def store(self, data_dir):
        """Create an initialized store."""
        engine = StorageEngine(data_dir, wal_mode=False)
        engine.initialize()
        return DjStore(engine, pagination=PaginationConfig(default_per_page=3, max_per_page=5))

    @pytest.mark.asyncio
    async def test_end_to_end_example(self, store):
        """User, event and playlist share one id sequence."""
        alice = await store.create_user(user_payload())
        assert alice.id == 1
        assert alice.points == 0
        assert alice.status == UserStatus.ACTIVE

        rave = await store.create_event(event_payload())
        assert rave.id == 2

        playlist = await store.create_playlist(
            PlaylistPayload(dj_name="DJ Bob", event_id=2, song_list=["SongA", "SongB"])
        )
        assert playlist.id == 3
        assert playlist.song_list == ["SongA", "SongB"]

        with pytest.raises(NotFoundError) as exc_info:
            await store.create_playlist(
                PlaylistPayload(dj_name="DJ Bob", event_id=99, song_list=["SongC"])
            )
        assert exc_info.value.message == "Event not found"

    @pytest.mark.asyncio
    async def test_ids_increase_across_kinds(self, store):
        """Every returned id is greater than all earlier ones."""
        user = await store.create_user(user_payload())
        event = await store.create_event(event_payload())
        issued = [user.id, event.id]

        issued.append((await store.create_song_request(
            SongRequestPayload(user_id=user.id, song_name="Track 1"))).id)
        issued.append((await store.create_tip(
            TipPayload(user_id=user.id, dj_name="DJ Bob", amount=5))).id)
        issued.append((await store.create_rating(
            RatingPayload(user_id=user.id, dj_name="DJ Bob", rating=4, review="Great"))).id)
        issued.append((await store.create_playlist(
            PlaylistPayload(dj_name="DJ Bob", event_id=event.id, song_list=["A"]))).id)
        issued.append((await store.create_user(user_payload(name="Bob", contact="b@x.com"))).id)

        assert all(later > earlier for earlier, later in zip(issued, issued[1:]))

    @pytest.mark.asyncio
    async def test_create_user_requires_name_and_contact(self, store):
        with pytest.raises(InvalidInputError):
            await store.create_user(user_payload(name=""))
        with pytest.raises(InvalidInputError):
            await store.create_user(user_payload(contact=""))
        assert store.users.count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["song_request", "tip", "rating"])
    async def test_unknown_user_rejected(self, store, kind):
        """Dependent rows need an existing user and consume no id when rejected."""
        payloads = {
            "song_request": (store.create_song_request,
                             SongRequestPayload(user_id=42, song_name="Track")),
            "tip": (store.create_tip, TipPayload(user_id=42, dj_name="DJ Bob", amount=5)),
            "rating": (store.create_rating,
                       RatingPayload(user_id=42, dj_name="DJ Bob", rating=3, review="")),
        }
        create, payload = payloads[kind]

        with pytest.raises(NotFoundError) as exc_info:
            await create(payload)
        assert exc_info.value.message == "User not found"
        assert store.ids.current() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["song_request", "tip", "rating"])
    async def test_known_user_inserts_one_row(self, store, kind):
        user = await store.create_user(user_payload())
        payloads = {
            "song_request": (store.create_song_request, store.song_requests,
                             SongRequestPayload(user_id=user.id, song_name="Track")),
            "tip": (store.create_tip, store.tips,
                    TipPayload(user_id=user.id, dj_name="DJ Bob", amount=5)),
            "rating": (store.create_rating, store.ratings,
                       RatingPayload(user_id=user.id, dj_name="DJ Bob", rating=3, review="ok")),
        }
        create, collection, payload = payloads[kind]

        row = await create(payload)

        assert collection.count() == 1
        assert collection.get(row.id) == row

    @pytest.mark.asyncio
    async def test_create_song_request_pending(self, store):
        user = await store.create_user(user_payload())
        request = await store.create_song_request(
            SongRequestPayload(user_id=user.id, song_name="Track")
        )
        assert request.status == RequestStatus.PENDING

        with pytest.raises(InvalidInputError):
            await store.create_song_request(SongRequestPayload(user_id=user.id, song_name=""))

    @pytest.mark.asyncio
    async def test_create_tip_validation(self, store):
        user = await store.create_user(user_payload())

        with pytest.raises(InvalidInputError):
            await store.create_tip(TipPayload(user_id=user.id, dj_name="DJ Bob", amount=0))
        with pytest.raises(InvalidInputError):
            await store.create_tip(TipPayload(user_id=user.id, dj_name="", amount=10))

        tip = await store.create_tip(TipPayload(user_id=user.id, dj_name="DJ Bob", amount=10))
        assert tip.status == TipStatus.PENDING

    @pytest.mark.asyncio
    async def test_validation_runs_before_user_check(self, store):
        """Invalid fields are reported even when the user is also unknown."""
        with pytest.raises(InvalidInputError):
            await store.create_tip(TipPayload(user_id=42, dj_name="", amount=10))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"event_name": ""}, {"dj_name": ""}, {"venue": ""}, {"capacity": 0}],
    )
    async def test_create_event_validation(self, store, overrides):
        with pytest.raises(InvalidInputError):
            await store.create_event(event_payload(**overrides))
        assert store.events.count() == 0

    @pytest.mark.asyncio
    async def test_create_rating_range(self, store):
        user = await store.create_user(user_payload())
        for bad in (-1, 6):
            with pytest.raises(InvalidInputError):
                await store.create_rating(
                    RatingPayload(user_id=user.id, dj_name="DJ Bob", rating=bad, review="")
                )
        with pytest.raises(InvalidInputError):
            await store.create_rating(
                RatingPayload(user_id=user.id, dj_name="", rating=3, review="")
            )

    @pytest.mark.asyncio
    async def test_create_playlist_validation(self, store):
        """Only an empty dj_name together with an empty song_list is rejected."""
        event = await store.create_event(event_payload())

        with pytest.raises(InvalidInputError):
            await store.create_playlist(PlaylistPayload(dj_name="", event_id=event.id, song_list=[]))

        no_songs = await store.create_playlist(
            PlaylistPayload(dj_name="DJ Bob", event_id=event.id, song_list=[])
        )
        no_dj = await store.create_playlist(
            PlaylistPayload(dj_name="", event_id=event.id, song_list=["A"])
        )
        assert no_songs.song_list == []
        assert no_dj.dj_name == ""

    @pytest.mark.asyncio
    async def test_delete_user(self, store):
        """Deleted users disappear from role searches."""
        alice = await store.create_user(user_payload(role=UserRole.DJ))
        bob = await store.create_user(user_payload(name="Bob", contact="b@x.com", role=UserRole.DJ))

        await store.delete_user(alice.id)

        djs = await store.search_users_by_role(UserRole.DJ)
        assert [u.id for u in djs] == [bob.id]
        with pytest.raises(NotFoundError):
            await store.get_user(alice.id)
        with pytest.raises(NotFoundError):
            await store.delete_user(alice.id)

    @pytest.mark.asyncio
    async def test_delete_user_keeps_dependent_rows(self, store):
        user = await store.create_user(user_payload())
        request = await store.create_song_request(
            SongRequestPayload(user_id=user.id, song_name="Track")
        )

        await store.delete_user(user.id)

        assert (await store.get_song_request(request.id)).user_id == user.id
        assert await store.get_song_requests_by_user(user.id) == [request]

    @pytest.mark.asyncio
    async def test_delete_event(self, store):
        event = await store.create_event(event_payload())
        playlist = await store.create_playlist(
            PlaylistPayload(dj_name="DJ Bob", event_id=event.id, song_list=["A"])
        )

        await store.delete_event(event.id)

        with pytest.raises(NotFoundError):
            await store.get_event(event.id)
        assert await store.get_playlist(playlist.id) == playlist
        with pytest.raises(NotFoundError):
            await store.delete_event(event.id)

    @pytest.mark.asyncio
    async def test_update_user_points(self, store):
        user = await store.create_user(user_payload())

        assert await store.update_user_points(user.id, 10) is True
        assert await store.update_user_points(user.id, 5) is True
        assert (await store.get_user(user.id)).points == 15

        assert await store.update_user_points(999, 10) is False

        with pytest.raises(InvalidInputError):
            await store.update_user_points(user.id, -1)
        assert (await store.get_user(user.id)).points == 15

    @pytest.mark.asyncio
    async def test_status_transitions(self, store):
        user = await store.create_user(user_payload())
        request = await store.create_song_request(
            SongRequestPayload(user_id=user.id, song_name="Track")
        )
        tip = await store.create_tip(TipPayload(user_id=user.id, dj_name="DJ Bob", amount=3))

        assert (await store.mark_song_request_played(request.id)).status == RequestStatus.PLAYED
        assert (await store.mark_song_request_played(request.id)).status == RequestStatus.PLAYED
        assert (await store.complete_tip(tip.id)).status == TipStatus.COMPLETED
        assert (await store.deactivate_user(user.id)).status == UserStatus.DEACTIVATED

        assert (await store.get_tip(tip.id)).status == TipStatus.COMPLETED
        with pytest.raises(NotFoundError):
            await store.complete_tip(12345)

    @pytest.mark.asyncio
    async def test_leaderboard_after_ratings(self, store):
        """Folding n ratings through the store gives their mean."""
        ratings = [4, 5, 2, 3]
        await store.init_leaderboard_entry(50, "DJ Bob")

        for r in ratings:
            await store.update_leaderboard_after_rating(50, r)
        await store.update_leaderboard_after_tip(50, 20)

        entry = await store.get_leaderboard_entry(50)
        assert entry.total_ratings == len(ratings)
        assert entry.avg_rating == pytest.approx(statistics.mean(ratings))
        assert entry.total_tips == 20

    @pytest.mark.asyncio
    async def test_leaderboard_unknown_dj(self, store):
        with pytest.raises(NotFoundError):
            await store.update_leaderboard_after_rating(50, 4)
        with pytest.raises(NotFoundError):
            await store.update_leaderboard_after_tip(50, 4)

    @pytest.mark.asyncio
    async def test_leaderboard_entry_not_reinitialized(self, store):
        await store.init_leaderboard_entry(50, "DJ Bob")
        await store.update_leaderboard_after_rating(50, 5)

        with pytest.raises(AlreadyExistsError):
            await store.init_leaderboard_entry(50, "DJ Bob")
        assert (await store.get_leaderboard_entry(50)).total_ratings == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        [
            lambda s: s.create_song_request(SongRequestPayload(user_id=BIG_ID, song_name="Track")),
            lambda s: s.create_tip(TipPayload(user_id=BIG_ID, dj_name="DJ Bob", amount=5)),
            lambda s: s.create_rating(
                RatingPayload(user_id=BIG_ID, dj_name="DJ Bob", rating=3, review="")
            ),
            lambda s: s.create_playlist(
                PlaylistPayload(dj_name="DJ Bob", event_id=BIG_ID, song_list=["A"])
            ),
            lambda s: s.get_user(BIG_ID),
            lambda s: s.get_event(BIG_ID),
            lambda s: s.delete_user(BIG_ID),
            lambda s: s.delete_event(BIG_ID),
            lambda s: s.complete_tip(BIG_ID),
            lambda s: s.update_leaderboard_after_rating(BIG_ID, 3),
            lambda s: s.update_leaderboard_after_tip(BIG_ID, 3),
        ],
    )
    async def test_unsigned_64_bit_key_not_found(self, store, operation):
        """Ids beyond the storable range cannot exist and read as missing."""
        await store.create_user(user_payload())
        await store.create_event(event_payload())

        with pytest.raises(NotFoundError):
            await operation(store)
        assert store.ids.current() == 2

    @pytest.mark.asyncio
    async def test_unsigned_64_bit_key_points_and_leaderboard_init(self, store):
        assert await store.update_user_points(BIG_ID, 1) is False

        with pytest.raises(InvalidInputError):
            await store.init_leaderboard_entry(BIG_ID, "DJ Big")
        assert store.leaderboard.is_empty()

    @pytest.mark.asyncio
    async def test_search_djs(self, store):
        await store.init_leaderboard_entry(1, "DJ Low")
        await store.init_leaderboard_entry(2, "DJ High")
        await store.update_leaderboard_after_rating(1, 2)
        await store.update_leaderboard_after_rating(2, 5)

        matches = await store.search_djs("house", 4, "Berlin")
        assert [e.dj_name for e in matches] == ["DJ High"]
        assert len(await store.search_djs("", 0, "")) == 2
        assert await store.search_djs("", 5.5, "") == []

        ranked = await store.get_leaderboard()
        assert [e.dj_id for e in ranked] == [2, 1]

    @pytest.mark.asyncio
    async def test_get_all_events(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.get_all_events()
        assert exc_info.value.message == "No events found"

        first = await store.create_event(event_payload(event_name="First"))
        second = await store.create_event(event_payload(event_name="Second"))
        assert await store.get_all_events() == [first, second]

    @pytest.mark.asyncio
    async def test_get_event_by_name(self, store):
        first = await store.create_event(event_payload(event_name="Rave"))
        await store.create_event(event_payload(event_name="Rave", venue="Club"))

        assert await store.get_event_by_name("Rave") == first
        with pytest.raises(NotFoundError):
            await store.get_event_by_name("Gala")

    @pytest.mark.asyncio
    async def test_get_paginated_events(self, store):
        with pytest.raises(NotFoundError):
            await store.get_paginated_events(1, 3)

        events = [await store.create_event(event_payload(event_name=f"E{i}")) for i in range(7)]

        assert await store.get_paginated_events(2, 3) == events[3:6]
        assert await store.get_paginated_events(10, 3) == []
        assert await store.get_paginated_events(1) == events[:3]
        assert len(await store.get_paginated_events(1, 50)) == 5

    @pytest.mark.asyncio
    async def test_get_playlists(self, store):
        event = await store.create_event(event_payload())
        other = await store.create_event(event_payload(event_name="Other"))
        bob = await store.create_playlist(
            PlaylistPayload(dj_name="DJ Bob", event_id=event.id, song_list=["A"])
        )
        ann = await store.create_playlist(
            PlaylistPayload(dj_name="DJ Ann", event_id=event.id, song_list=["B"])
        )

        assert await store.get_playlist_by_dj_name("DJ Bob") == [bob]
        assert await store.get_playlist_by_event_id(event.id) == [bob, ann]

        with pytest.raises(NotFoundError) as exc_info:
            await store.get_playlist_by_dj_name("DJ Nobody")
        assert exc_info.value.message == "No playlists found for DJ: DJ Nobody"

        with pytest.raises(NotFoundError) as exc_info:
            await store.get_playlist_by_event_id(other.id)
        assert exc_info.value.message == f"No playlists found for event ID: {other.id}"

    @pytest.mark.asyncio
    async def test_search_users_by_role_empty(self, store):
        await store.create_user(user_payload(role=UserRole.REGULAR_USER))
        assert await store.search_users_by_role(UserRole.ADMIN) == []

    @pytest.mark.asyncio
    async def test_get_ratings_for_dj(self, store):
        user = await store.create_user(user_payload())
        rating = await store.create_rating(
            RatingPayload(user_id=user.id, dj_name="DJ Bob", rating=5, review="Loved it")
        )
        await store.create_rating(
            RatingPayload(user_id=user.id, dj_name="DJ Ann", rating=2, review="Meh")
        )

        assert await store.get_ratings_for_dj("DJ Bob") == [rating]
        assert await store.get_ratings_for_dj("DJ Zed") == []

    @pytest.mark.asyncio
    async def test_stats(self, store):
        user = await store.create_user(user_payload())
        await store.create_song_request(SongRequestPayload(user_id=user.id, song_name="Track"))
        await store.init_leaderboard_entry(77, "DJ Bob")

        stats = await store.stats()

        assert stats["users"] == 1
        assert stats["song_requests"] == 1
        assert stats["leaderboard"] == 1
        assert stats["events"] == 0
        assert stats["id_counter"] == 2
