"""Property and Room schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from staydesk.schemas.base import BaseSchema, IDMixin, TimestampMixin


class PropertyCreate(BaseSchema):
    """Create a new property."""

    name: str = Field(..., min_length=2, max_length=255)
    address: str = Field(..., min_length=3, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: str = "Italy"
    description: Optional[str] = None


class PropertyUpdate(BaseSchema):
    """Update property."""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = Field(None, min_length=3, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = None
    description: Optional[str] = None


class PropertyResponse(BaseSchema, IDMixin, TimestampMixin):
    """Property response."""

    name: str
    address: str
    city: str
    postal_code: Optional[str] = None
    country: str
    description: Optional[str] = None
    room_count: int = 0


class RoomCreate(BaseSchema):
    """Create a new room."""

    name: str = Field(..., min_length=1, max_length=100)
    max_guests: int = Field(default=2, ge=1, le=50)
    description: Optional[str] = None


class RoomUpdate(BaseSchema):
    """Update room."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    max_guests: Optional[int] = Field(None, ge=1, le=50)
    description: Optional[str] = None


class RoomResponse(BaseSchema, IDMixin, TimestampMixin):
    """Room response."""

    property_id: UUID
    name: str
    max_guests: int
    description: Optional[str] = None
    airbnb_ical_url: Optional[str] = None
    booking_com_ical_url: Optional[str] = None
    last_synced_at: Optional[datetime] = None
