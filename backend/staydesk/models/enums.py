"""Enumeration types for the StayDesk domain model."""

from enum import Enum


class UserRole(str, Enum):
    """Role of a back-office user."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"  # Cleaning / maintenance, no sync rights


class BookingStatus(str, Enum):
    """Status of a booking."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


class BookingChannel(str, Enum):
    """Where a booking was taken."""
    DIRECT = "DIRECT"
    AIRBNB = "AIRBNB"
    BOOKING_COM = "BOOKING_COM"
    OTHER = "OTHER"


class ICalSource(str, Enum):
    """External platform publishing an iCal feed for a room."""
    AIRBNB = "AIRBNB"
    BOOKING_COM = "BOOKING_COM"

    @property
    def channel(self) -> BookingChannel:
        return BookingChannel(self.value)


class SyncMode(str, Enum):
    """How a feed is applied to local bookings."""
    IMPORT = "import"        # Create/update only (scheduled job)
    RECONCILE = "reconcile"  # Also remove upcoming bookings dropped from the feed


class DocumentType(str, Enum):
    """Identity document submitted at guest check-in."""
    CARTA_IDENTITA = "CARTA_IDENTITA"
    PASSAPORTO = "PASSAPORTO"
    PATENTE = "PATENTE"


class CheckInStatus(str, Enum):
    """Review status of a guest check-in submission."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
