"""SQLAlchemy models for StayDesk."""

from staydesk.models.user import User
from staydesk.models.property import Property, Room
from staydesk.models.booking import Booking
from staydesk.models.checkin import GuestCheckIn
from staydesk.models.ical_sync import ICalSync

__all__ = [
    "User",
    "Property",
    "Room",
    "Booking",
    "GuestCheckIn",
    "ICalSync",
]
