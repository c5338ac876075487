"""
Row types for DJStore collections.

Each entity is a dataclass with to_dict/from_dict used by the storage
layer to encode rows as JSON. Enum fields are stored by value.

Invariants:
    - Enum values are persisted by name and are append-only
    - Every row carries its own key (id, or dj_id for leaderboard rows)
    - created_at is Unix milliseconds

How to change safely:
    - New fields need a default in from_dict so older rows still decode
    - Never rename an enum value; add a new one instead
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class UserStatus(Enum):
    ACTIVE = "Active"
    DEACTIVATED = "Deactivated"


class UserRole(Enum):
    """Roles are stored for callers; the store never checks them."""

    REGULAR_USER = "RegularUser"
    ADMIN = "Admin"
    DJ = "DJ"


class RequestStatus(Enum):
    PENDING = "Pending"
    PLAYED = "Played"


class TipStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


@dataclass
class User:
    """A registered user.

    Attributes:
        id: Allocator-issued identifier
        name: Display name
        contact: Contact detail (email, handle)
        status: Active or Deactivated
        role: RegularUser, Admin or DJ
        points: Reward points, only ever increased
        created_at: Creation timestamp (Unix ms)
    """

    id: int
    name: str
    contact: str
    status: UserStatus
    role: UserRole
    points: int
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=data["id"],
            name=data["name"],
            contact=data["contact"],
            status=UserStatus(data.get("status", UserStatus.ACTIVE.value)),
            role=UserRole(data.get("role", UserRole.REGULAR_USER.value)),
            points=data.get("points", 0),
            created_at=data["created_at"],
        )


@dataclass
class SongRequest:
    """A song requested by a user."""

    id: int
    user_id: int
    song_name: str
    status: RequestStatus
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SongRequest:
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            song_name=data["song_name"],
            status=RequestStatus(data.get("status", RequestStatus.PENDING.value)),
            created_at=data["created_at"],
        )


@dataclass
class Tip:
    """A tip from a user to a DJ."""

    id: int
    user_id: int
    dj_name: str
    amount: int
    status: TipStatus
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tip:
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            dj_name=data["dj_name"],
            amount=data["amount"],
            status=TipStatus(data.get("status", TipStatus.PENDING.value)),
            created_at=data["created_at"],
        )


@dataclass
class Event:
    """A scheduled DJ event.

    Attributes:
        scheduled_at: Caller-supplied start time, stored as given
    """

    id: int
    event_name: str
    dj_name: str
    venue: str
    capacity: int
    scheduled_at: int
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        return cls(**data)


@dataclass
class Rating:
    """A 0-5 rating of a DJ with an optional review."""

    id: int
    user_id: int
    dj_name: str
    rating: int
    review: str
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rating:
        return cls(**data)


@dataclass
class Playlist:
    """An ordered list of songs a DJ plays at an event."""

    id: int
    dj_name: str
    event_id: int
    song_list: list[str] = field(default_factory=list)
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Playlist:
        return cls(
            id=data["id"],
            dj_name=data["dj_name"],
            event_id=data["event_id"],
            song_list=list(data.get("song_list", [])),
            created_at=data.get("created_at", 0),
        )


@dataclass
class LeaderboardEntry:
    """Running aggregates for one DJ.

    Keyed by dj_id, which is its own key space and is not checked
    against Users.

    Attributes:
        dj_id: Leaderboard key
        dj_name: Display name
        total_tips: Sum of folded tip amounts
        total_ratings: Number of folded ratings
        avg_rating: Mean of all folded ratings
    """

    dj_id: int
    dj_name: str
    total_tips: int = 0
    total_ratings: int = 0
    avg_rating: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LeaderboardEntry:
        return cls(
            dj_id=data["dj_id"],
            dj_name=data["dj_name"],
            total_tips=data.get("total_tips", 0),
            total_ratings=data.get("total_ratings", 0),
            avg_rating=float(data.get("avg_rating", 0.0)),
        )
