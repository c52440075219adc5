"""Booking schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, model_validator

from staydesk.schemas.base import BaseSchema, IDMixin, TimestampMixin
from staydesk.models.enums import BookingStatus, BookingChannel


class BookingCreate(BaseSchema):
    """Create a booking taken directly (phone, email, walk-in)."""

    room_id: UUID
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_email: EmailStr
    guest_phone: Optional[str] = Field(None, max_length=50)
    guests: int = Field(default=1, ge=1, le=50)
    check_in: datetime
    check_out: datetime
    total_price: Decimal = Field(default=Decimal("0"), ge=0)
    status: BookingStatus = BookingStatus.CONFIRMED
    channel: BookingChannel = BookingChannel.DIRECT
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self):
        """Check-out must be after check-in."""
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self


class BookingUpdate(BaseSchema):
    """Update a booking."""

    guest_name: Optional[str] = Field(None, min_length=1, max_length=255)
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = Field(None, max_length=50)
    guests: Optional[int] = Field(None, ge=1, le=50)
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    total_price: Optional[Decimal] = Field(None, ge=0)
    status: Optional[BookingStatus] = None
    notes: Optional[str] = None


class BookingResponse(BaseSchema, IDMixin, TimestampMixin):
    """Booking response."""

    booking_code: str
    property_id: UUID
    room_id: UUID
    guest_name: str
    guest_email: str
    guest_phone: Optional[str] = None
    guests: int
    check_in: datetime
    check_out: datetime
    total_price: Decimal
    status: BookingStatus
    channel: BookingChannel
    imported_from_ical: bool
    external_calendar_id: Optional[str] = None
    notes: Optional[str] = None
    check_in_count: int = 0


class PublicBookingResponse(BaseSchema):
    """What a guest sees after entering their booking code."""

    booking_code: str
    property_name: str
    room_name: str
    guest_name: str
    check_in: datetime
    check_out: datetime
    guests: int
    check_in_submitted: bool
