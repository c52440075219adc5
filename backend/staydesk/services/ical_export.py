"""Room calendar export.

Publishes a room's bookings as an iCal feed that Airbnb / Booking.com import
to block the same nights on their side.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import UUID

from icalendar import Calendar, Event
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from staydesk.models.booking import Booking
from staydesk.models.property import Room
from staydesk.models.enums import BookingStatus
from staydesk.services.ical_sync import RoomNotFoundError

PRODID = "-//StayDesk//Room Calendar//EN"
# Hint for consumers that honour it; platforms poll on their own schedule anyway
PUBLISHED_TTL = "PT1H"


def booking_event(booking: Booking, stamp: datetime) -> Event:
    """Busy all-day event covering a booking's nights."""
    event = Event()
    event.add("uid", booking.external_calendar_id or str(booking.id))
    event.add("dtstamp", stamp)
    event.add("dtstart", booking.check_in.date())
    event.add("dtend", booking.check_out.date())
    event.add("summary", f"Occupied – {booking.guest_name or 'Booking'}")
    event.add("description", f"Booking {booking.booking_code or booking.id}")
    event.add("transp", "OPAQUE")
    event.add("x-microsoft-cdo-busystatus", "BUSY")
    return event


def build_room_calendar(
    room: Room,
    bookings: Sequence[Booking],
    timezone_name: str,
    property_name: Optional[str] = None,
    stamp: Optional[datetime] = None,
) -> bytes:
    """Serialize bookings as an iCalendar document."""
    stamp = stamp or datetime.now(timezone.utc)
    title = f"{property_name} - {room.name}" if property_name else room.name

    calendar = Calendar()
    calendar.add("prodid", PRODID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", title)
    calendar.add("x-wr-caldesc", f"Bookings for {room.name}")
    calendar.add("x-wr-timezone", timezone_name)
    calendar.add("x-published-ttl", PUBLISHED_TTL)

    for booking in bookings:
        calendar.add_component(booking_event(booking, stamp))

    return calendar.to_ical()


async def export_room_calendar(db: AsyncSession, room_id: UUID, timezone_name: str) -> tuple[Room, bytes]:
    """Load a room's non-cancelled bookings and render its feed.

    Raises:
        RoomNotFoundError: unknown room
    """
    result = await db.execute(
        select(Room).options(selectinload(Room.property)).where(Room.id == room_id)
    )
    room = result.scalar_one_or_none()
    if room is None:
        raise RoomNotFoundError(room_id)

    bookings_result = await db.execute(
        select(Booking)
        .where(
            Booking.room_id == room_id,
            Booking.status != BookingStatus.CANCELLED,
        )
        .order_by(Booking.check_in)
    )
    bookings = bookings_result.scalars().all()

    return room, build_room_calendar(
        room,
        bookings,
        timezone_name=timezone_name,
        property_name=room.property.name if room.property else None,
    )
