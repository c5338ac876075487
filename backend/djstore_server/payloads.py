"""
Request payloads accepted by DJStore operations.

Callers deserialize their wire format into these models before calling
the store. Only types are checked here; emptiness and range rules are
enforced by the store so they surface as InvalidInputError.
"""

from pydantic import BaseModel, Field

from .models import UserRole


class UserPayload(BaseModel):
    """Create a user."""
    name: str = Field(..., description="Display name")
    contact: str = Field(..., description="Email or other contact detail")
    role: UserRole = Field(default=UserRole.REGULAR_USER, description="RegularUser, Admin or DJ")


class SongRequestPayload(BaseModel):
    """Request a song."""
    user_id: int = Field(..., description="Requesting user ID")
    song_name: str = Field(..., description="Requested song")


class TipPayload(BaseModel):
    """Tip a DJ."""
    user_id: int = Field(..., description="Tipping user ID")
    dj_name: str = Field(..., description="DJ receiving the tip")
    amount: int = Field(..., description="Tip amount, must be positive")


class EventPayload(BaseModel):
    """Schedule an event."""
    event_name: str = Field(..., description="Event name")
    dj_name: str = Field(..., description="Headlining DJ")
    venue: str = Field(..., description="Venue name")
    capacity: int = Field(..., description="Maximum attendance, must be positive")
    scheduled_at: int = Field(..., description="Start time (Unix ms)")


class RatingPayload(BaseModel):
    """Rate a DJ."""
    user_id: int = Field(..., description="Rating user ID")
    dj_name: str = Field(..., description="DJ being rated")
    rating: int = Field(..., description="Rating from 0 to 5")
    review: str = Field(default="", description="Free-text review")


class PlaylistPayload(BaseModel):
    """Publish a playlist for an event."""
    dj_name: str = Field(..., description="DJ owning the playlist")
    event_id: int = Field(..., description="Event the playlist belongs to")
    song_list: list[str] = Field(default_factory=list, description="Songs in play order")
