"""iCal sync schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl

from staydesk.schemas.base import BaseSchema
from staydesk.models.enums import ICalSource


class FeedSyncResult(BaseModel):
    """Outcome of syncing one feed of one room."""

    source: ICalSource
    success: bool
    imported: int = 0
    updated: int = 0
    removed: int = 0
    # Per-event problems; the feed itself was still synced
    errors: list[str] = Field(default_factory=list)
    # Feed-level failure
    error: Optional[str] = None
    # Platform rejected the feed token; URL must be regenerated
    expired: bool = False


class RoomSyncResult(BaseModel):
    """Outcome of syncing every configured feed of a room."""

    room_id: UUID
    room_name: str
    property_name: Optional[str] = None
    syncs: list[FeedSyncResult] = Field(default_factory=list)


class SyncSummary(BaseModel):
    """Aggregate response of the sync endpoints."""

    success: bool = True
    message: str
    imported: int = 0
    updated: int = 0
    removed: int = 0
    # Number of feeds that failed at feed level
    errors: int = 0
    rooms_synced: int = 0
    timestamp: datetime
    details: list[RoomSyncResult] = Field(default_factory=list)


class SyncAllRequest(BaseSchema):
    """Body of the batch sync endpoint."""

    property_id: Optional[UUID] = None


class RoomICalConfigUpdate(BaseSchema):
    """Set or clear a room's channel calendar URLs."""

    airbnb_ical_url: Optional[HttpUrl] = None
    booking_com_ical_url: Optional[HttpUrl] = None


class ICalSyncLogResponse(BaseSchema):
    """Sync history entry."""

    id: UUID
    room_id: UUID
    source: ICalSource
    success: bool
    events_imported: int
    error_message: Optional[str] = None
    synced_at: datetime
