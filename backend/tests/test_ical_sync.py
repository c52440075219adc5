from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from staydesk.core.config import get_settings
from staydesk.models import Booking, ICalSync, Room
from staydesk.models.enums import BookingChannel, BookingStatus, ICalSource, SyncMode
from staydesk.services.booking_code import CodeGenerationExhaustedError, is_valid_booking_code
from staydesk.services.ical_sync import (
    CalendarReconciler,
    ICalSyncService,
    RoomNotFoundError,
    placeholder_email,
)

from tests.conftest import add_booking, add_check_in, fixed_clock, make_feed, vevent

AIRBNB_URL = "https://airbnb.test/calendar/ical/1.ics"
BOOKING_COM_URL = "https://booking.test/ical/1.ics"


def reconciler(db, feed_client, mode=SyncMode.IMPORT, retention_days=30):
    return CalendarReconciler(
        db,
        feed_client,
        retention_days=retention_days,
        mode=mode,
        clock=fixed_clock,
    )


async def bookings_of(db, room):
    result = await db.execute(
        select(Booking).where(Booking.room_id == room.id).order_by(Booking.check_in)
    )
    return list(result.scalars().all())


async def sync_logs_of(db, room):
    result = await db.execute(select(ICalSync).where(ICalSync.room_id == room.id))
    return list(result.scalars().all())


async def test_first_sync_creates_booking(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="abc-123", summary="John Doe")))

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is True
    assert result.imported == 1
    assert result.updated == 0
    assert result.errors == []

    [booking] = await bookings_of(db, room)
    assert booking.guest_name == "John Doe"
    assert booking.check_in == datetime(2025, 3, 15)
    assert booking.check_out == datetime(2025, 3, 18)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.channel == BookingChannel.AIRBNB
    assert booking.imported_from_ical is True
    assert booking.external_calendar_id == "abc-123"
    assert booking.guest_email == placeholder_email(ICalSource.AIRBNB)
    assert booking.guests == 1
    assert booking.created_by_id == admin.id
    assert booking.property_id == room.property_id
    assert is_valid_booking_code(booking.booking_code)


async def test_guest_name_follows_feed_until_check_in(db, room, admin, feed_server, feed_client):
    sync = reconciler(db, feed_client)

    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="abc-123", summary="John Doe")))
    await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)

    # Unchanged feed: nothing new
    result = await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)
    assert result.imported == 0
    assert result.updated == 1
    [booking] = await bookings_of(db, room)
    assert booking.guest_name == "John Doe"
    assert booking.check_in == datetime(2025, 3, 15)
    assert booking.check_out == datetime(2025, 3, 18)

    # Renamed on the platform, no check-in yet
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="abc-123", summary="Jane Doe")))
    await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)
    [booking] = await bookings_of(db, room)
    assert booking.guest_name == "Jane Doe"

    # Host fills in real contact details, then the guest checks in
    booking.guest_email = "jane.doe@example.com"
    booking.guest_phone = "+39 333 1234567"
    await db.commit()
    await add_check_in(db, booking)
    feed_server.set(
        AIRBNB_URL,
        make_feed(vevent(uid="abc-123", start="20250316", end="20250319", summary="Someone Else")),
    )
    result = await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)

    assert result.updated == 1
    [booking] = await bookings_of(db, room)
    await db.refresh(booking)
    assert booking.guest_name == "Jane Doe"
    assert booking.guest_email == "jane.doe@example.com"
    assert booking.guest_phone == "+39 333 1234567"
    assert booking.check_in == datetime(2025, 3, 16)
    assert booking.check_out == datetime(2025, 3, 19)
    assert booking.updated_at == fixed_clock()


async def test_event_without_summary_uses_placeholder_name(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="no-name")))

    await reconciler(db, feed_client).sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)

    [booking] = await bookings_of(db, room)
    assert booking.guest_name == "Imported booking"


async def test_same_uid_on_other_source_is_a_different_booking(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="shared-uid", summary="Airbnb guest")))
    feed_server.set(BOOKING_COM_URL, make_feed(vevent(uid="shared-uid", summary="Booking guest")))
    sync = reconciler(db, feed_client)

    await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)
    result = await sync.sync_feed(room.id, BOOKING_COM_URL, ICalSource.BOOKING_COM, admin.id)

    assert result.imported == 1
    bookings = await bookings_of(db, room)
    assert {b.channel for b in bookings} == {BookingChannel.AIRBNB, BookingChannel.BOOKING_COM}


async def test_events_past_retention_are_skipped_silently(db, room, admin, feed_server, feed_client):
    feed_server.set(
        AIRBNB_URL,
        make_feed(
            vevent(uid="old", start="20240101", end="20240105"),
            vevent(uid="recent", start="20250210", end="20250215"),
        ),
    )

    result = await reconciler(db, feed_client, retention_days=30).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is True
    assert result.imported == 1
    assert result.updated == 0
    assert result.errors == []
    [booking] = await bookings_of(db, room)
    assert booking.external_calendar_id == "recent"


async def test_event_with_missing_dates_is_an_error(db, room, admin, feed_server, feed_client):
    feed_server.set(
        AIRBNB_URL,
        make_feed(vevent(uid="broken", start=None), vevent(uid="good")),
    )

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is True
    assert result.imported == 1
    assert len(result.errors) == 1
    assert "broken" in result.errors[0]
    assert "missing dates" in result.errors[0]


async def test_all_day_event_without_end_is_imported_for_one_night(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="one-night", end=None, summary="Short Stay")))

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.imported == 1
    assert result.errors == []
    [booking] = await bookings_of(db, room)
    assert booking.check_in == datetime(2025, 3, 15)
    assert booking.check_out == datetime(2025, 3, 16)


async def test_database_error_fails_only_that_event(db, room, admin, feed_server, feed_client, monkeypatch):
    feed_server.set(
        AIRBNB_URL,
        make_feed(
            vevent(uid="first", start="20250310", end="20250312"),
            vevent(uid="bad"),
            vevent(uid="last", start="20250401", end="20250403"),
        ),
    )
    apply_event = CalendarReconciler._apply_event

    async def failing_apply(self, room_id, property_id, source, event, actor_id, cutoff):
        if event.uid == "bad":
            raise IntegrityError("INSERT INTO bookings", {}, Exception("duplicate key"))
        return await apply_event(self, room_id, property_id, source, event, actor_id, cutoff)

    monkeypatch.setattr(CalendarReconciler, "_apply_event", failing_apply)

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is True
    assert result.imported == 2
    assert result.errors == ["Event bad: database error (IntegrityError)"]
    assert {b.external_calendar_id for b in await bookings_of(db, room)} == {"first", "last"}

    [log] = await sync_logs_of(db, room)
    assert log.success is True
    assert log.events_imported == 2


async def test_event_without_uid_is_imported(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid=None, summary="No UID")))

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.imported == 1
    [booking] = await bookings_of(db, room)
    assert booking.external_calendar_id.startswith("event-")


async def test_code_exhaustion_fails_only_that_event(db, room, admin, feed_server, feed_client, monkeypatch):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="new-event")))

    async def exhausted(db, max_attempts=10, generator=None):
        raise CodeGenerationExhaustedError(max_attempts)

    monkeypatch.setattr("staydesk.services.ical_sync.generate_unique_booking_code", exhausted)

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is True
    assert result.imported == 0
    assert len(result.errors) == 1
    assert "new-event" in result.errors[0]
    assert await bookings_of(db, room) == []


async def test_fetch_failure_touches_nothing_and_logs(db, room, admin, feed_server, feed_client):
    existing = await add_booking(
        db,
        room,
        channel=BookingChannel.AIRBNB,
        imported_from_ical=True,
        external_calendar_id="keep-me",
        check_in=datetime(2025, 3, 20),
        check_out=datetime(2025, 3, 22),
    )
    feed_server.set(AIRBNB_URL, "Service Unavailable", status_code=503)

    result = await reconciler(db, feed_client, mode=SyncMode.RECONCILE).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is False
    assert "503" in result.error
    assert result.expired is False
    assert [b.id for b in await bookings_of(db, room)] == [existing.id]

    [log] = await sync_logs_of(db, room)
    assert log.success is False
    assert log.error_message
    assert log.events_imported == 0


async def test_expired_feed_is_flagged(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, "Invalid token", status_code=403)

    result = await reconciler(db, feed_client).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.success is False
    assert result.expired is True
    [log] = await sync_logs_of(db, room)
    assert log.success is False


async def test_successful_sync_logs_imported_count(db, room, admin, feed_server, feed_client):
    feed_server.set(
        AIRBNB_URL,
        make_feed(vevent(uid="a"), vevent(uid="b", start="20250401", end="20250403")),
    )

    await reconciler(db, feed_client).sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)

    [log] = await sync_logs_of(db, room)
    assert log.success is True
    assert log.events_imported == 2
    assert log.source == ICalSource.AIRBNB


async def test_unknown_room_fails_before_fetching(db, admin, feed_server, feed_client):
    with pytest.raises(RoomNotFoundError):
        await reconciler(db, feed_client).sync_feed(
            uuid4(), AIRBNB_URL, ICalSource.AIRBNB, admin.id
        )

    assert feed_server.requests == []


async def test_import_mode_keeps_bookings_dropped_from_feed(db, room, admin, feed_server, feed_client):
    await add_booking(
        db,
        room,
        channel=BookingChannel.AIRBNB,
        imported_from_ical=True,
        external_calendar_id="gone",
        check_in=datetime(2025, 4, 1),
        check_out=datetime(2025, 4, 3),
    )
    feed_server.set(AIRBNB_URL, make_feed())

    result = await reconciler(db, feed_client, mode=SyncMode.IMPORT).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.removed == 0
    assert len(await bookings_of(db, room)) == 1


async def test_reconcile_removes_only_eligible_bookings(db, room, admin, feed_server, feed_client):
    imported = dict(channel=BookingChannel.AIRBNB, imported_from_ical=True)
    dropped = await add_booking(
        db, room, external_calendar_id="dropped",
        check_in=datetime(2025, 4, 1), check_out=datetime(2025, 4, 3), **imported,
    )
    checked_in = await add_booking(
        db, room, external_calendar_id="dropped-with-guest",
        check_in=datetime(2025, 4, 5), check_out=datetime(2025, 4, 7), **imported,
    )
    await add_check_in(db, checked_in)
    past = await add_booking(
        db, room, external_calendar_id="dropped-past",
        check_in=datetime(2025, 2, 20), check_out=datetime(2025, 2, 22), **imported,
    )
    other_source = await add_booking(
        db, room, external_calendar_id="booking-com-uid",
        check_in=datetime(2025, 4, 10), check_out=datetime(2025, 4, 12),
        channel=BookingChannel.BOOKING_COM, imported_from_ical=True,
    )
    direct = await add_booking(
        db, room, check_in=datetime(2025, 4, 15), check_out=datetime(2025, 4, 17),
    )
    still_listed = await add_booking(
        db, room, external_calendar_id="listed",
        check_in=datetime(2025, 3, 15), check_out=datetime(2025, 3, 18), **imported,
    )
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="listed", summary="Listed guest")))

    result = await reconciler(db, feed_client, mode=SyncMode.RECONCILE).sync_feed(
        room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id
    )

    assert result.removed == 1
    assert result.updated == 1
    remaining = {b.id for b in await bookings_of(db, room)}
    assert dropped.id not in remaining
    assert {checked_in.id, past.id, other_source.id, direct.id, still_listed.id} <= remaining


async def test_sync_room_runs_every_configured_feed(db, room, admin, feed_server, feed_client):
    room.booking_com_ical_url = BOOKING_COM_URL
    await db.commit()
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="air-1")))
    feed_server.set(BOOKING_COM_URL, "Not Found", status_code=404)

    service = ICalSyncService(db, get_settings(), feed_client, clock=fixed_clock)
    room_result = await service.sync_room(room.id, admin.id, SyncMode.RECONCILE, retention_days=90)

    assert room_result.room_name == "Camera Blu"
    assert room_result.property_name == "Casa Sole"
    by_source = {s.source: s for s in room_result.syncs}
    assert by_source[ICalSource.AIRBNB].success is True
    assert by_source[ICalSource.AIRBNB].imported == 1
    assert by_source[ICalSource.BOOKING_COM].success is False

    refreshed = await db.get(Room, room.id)
    assert refreshed.last_synced_at == fixed_clock()
    assert len(await sync_logs_of(db, room)) == 2


async def test_sync_rooms_skips_rooms_without_feeds(db, room, admin, feed_server, feed_client):
    bare = Room(property_id=room.property_id, name="Camera Rossa")
    db.add(bare)
    await db.commit()
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="air-1"), vevent(uid="air-2", start="20250320", end="20250322")))

    summary = await ICalSyncService(db, get_settings(), feed_client, clock=fixed_clock).sync_rooms(
        admin.id, SyncMode.IMPORT, retention_days=30
    )

    assert summary.success is True
    assert summary.rooms_synced == 1
    assert summary.imported == 2
    assert summary.errors == 0
    assert summary.message == "Sync completed: 2 new bookings imported, 0 updated, 0 errors"
    assert summary.details[0].room_id == room.id


async def test_sync_rooms_with_nothing_configured(db, admin, feed_client):
    summary = await ICalSyncService(db, get_settings(), feed_client, clock=fixed_clock).sync_rooms(
        admin.id, SyncMode.IMPORT, retention_days=30
    )

    assert summary.success is True
    assert summary.rooms_synced == 0
    assert summary.imported == 0
    assert summary.message == "No rooms with iCal calendars configured"


async def test_sync_log_history_is_append_only(db, room, admin, feed_server, feed_client):
    feed_server.set(AIRBNB_URL, make_feed(vevent(uid="abc-123")))
    sync = reconciler(db, feed_client)

    for _ in range(3):
        await sync.sync_feed(room.id, AIRBNB_URL, ICalSource.AIRBNB, admin.id)

    count = await db.execute(select(func.count(ICalSync.id)).where(ICalSync.room_id == room.id))
    assert count.scalar() == 3
