"""Channel calendar reconciliation.

Brings the bookings of one room for one platform (Airbnb, Booking.com) in line
with the events currently published in that platform's iCal feed:

- unknown UID            -> new CONFIRMED booking, imported_from_ical=True
- known UID, no check-in -> dates and guest name refreshed
- known UID, checked in  -> dates refreshed, guest data left untouched
- (reconcile mode) upcoming imported bookings whose UID left the feed are
  deleted unless a guest already checked in

Every invocation appends one ICalSync row, whether it succeeds or not.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from staydesk.core.config import Settings
from staydesk.models.booking import Booking
from staydesk.models.checkin import GuestCheckIn
from staydesk.models.property import Room
from staydesk.models.enums import BookingStatus, ICalSource, SyncMode
from staydesk.schemas.ical import FeedSyncResult, RoomSyncResult, SyncSummary
from staydesk.services.booking_code import (
    CodeGenerationExhaustedError,
    DEFAULT_MAX_ATTEMPTS,
    generate_unique_booking_code,
)
from staydesk.services.ical_feed import FeedError, FeedEvent, FeedExpiredError, ICalFeedClient
from staydesk.services.sync_log import SyncLogService

logger = logging.getLogger(__name__)

DEFAULT_GUEST_NAME = "Imported booking"

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"


class RoomNotFoundError(Exception):
    """The room to sync does not exist."""

    def __init__(self, room_id: UUID):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class EventProcessingError(Exception):
    """A single feed event could not be applied."""


def placeholder_email(source: ICalSource) -> str:
    """Guest email used for imported bookings (feeds carry no contact data)."""
    return f"import-{source.value.lower()}@placeholder.com"


# One lock per (room, source) so overlapping syncs in this process serialise
_sync_locks: dict[tuple[UUID, ICalSource], asyncio.Lock] = {}


def get_sync_lock(room_id: UUID, source: ICalSource) -> asyncio.Lock:
    key = (room_id, source)
    lock = _sync_locks.get(key)
    if lock is None:
        lock = _sync_locks[key] = asyncio.Lock()
    return lock


class CalendarReconciler:
    """Applies one channel feed to one room's bookings."""

    def __init__(
        self,
        db: AsyncSession,
        feed_client: ICalFeedClient,
        retention_days: int,
        mode: SyncMode = SyncMode.IMPORT,
        default_guest_name: str = DEFAULT_GUEST_NAME,
        code_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.feed_client = feed_client
        self.retention_days = retention_days
        self.mode = mode
        self.default_guest_name = default_guest_name
        self.code_max_attempts = code_max_attempts
        self.clock = clock
        self.sync_log = SyncLogService(db)

    async def sync_feed(
        self,
        room_id: UUID,
        feed_url: str,
        source: ICalSource,
        actor_id: Optional[UUID],
    ) -> FeedSyncResult:
        """Sync one feed into one room.

        Feed-level failures are returned as ``success=False`` results, never raised.

        Raises:
            RoomNotFoundError: before any network access
        """
        result = await self.db.execute(select(Room).where(Room.id == room_id))
        room = result.scalar_one_or_none()
        if room is None:
            raise RoomNotFoundError(room_id)

        async with get_sync_lock(room.id, source):
            return await self._sync(room.id, room.property_id, feed_url, source, actor_id)

    async def _sync(
        self,
        room_id: UUID,
        property_id: UUID,
        feed_url: str,
        source: ICalSource,
        actor_id: Optional[UUID],
    ) -> FeedSyncResult:
        try:
            events = await self.feed_client.fetch_events(feed_url)
        except FeedError as e:
            logger.warning(f"[ICAL] {source.value} feed failed for room {room_id}: {e}")
            await self.sync_log.log_failure(room_id, source, str(e))
            return FeedSyncResult(
                source=source,
                success=False,
                error=str(e),
                expired=isinstance(e, FeedExpiredError),
            )

        outcome = FeedSyncResult(source=source, success=True)
        cutoff = self.clock() - timedelta(days=self.retention_days)
        seen_uids: set[str] = set()

        for event in events:
            seen_uids.add(event.uid)
            try:
                async with self.db.begin_nested():
                    action = await self._apply_event(
                        room_id, property_id, source, event, actor_id, cutoff
                    )
            except (EventProcessingError, CodeGenerationExhaustedError, ValueError) as e:
                outcome.errors.append(f"Event {event.uid}: {e}")
                continue
            except SQLAlchemyError as e:
                logger.error(f"[ICAL] Database error on event {event.uid} (room {room_id}): {e}")
                outcome.errors.append(f"Event {event.uid}: database error ({type(e).__name__})")
                continue

            if action == CREATED:
                outcome.imported += 1
            elif action == UPDATED:
                outcome.updated += 1

        if self.mode == SyncMode.RECONCILE:
            outcome.removed = await self._remove_dropped(room_id, source, seen_uids)

        await self.sync_log.log_success(room_id, source, outcome.imported)

        logger.info(
            f"[ICAL] {source.value} room {room_id}: {outcome.imported} imported, "
            f"{outcome.updated} updated, {outcome.removed} removed, {len(outcome.errors)} errors"
        )
        return outcome

    async def _apply_event(
        self,
        room_id: UUID,
        property_id: UUID,
        source: ICalSource,
        event: FeedEvent,
        actor_id: Optional[UUID],
        cutoff: datetime,
    ) -> str:
        if event.start is None or event.end is None:
            raise EventProcessingError(event.problem or "missing dates")

        if event.end < cutoff:
            return SKIPPED

        guest_name = event.summary or self.default_guest_name
        booking = await self._find_booking(room_id, source, event.uid)

        if booking is None:
            booking_code = await generate_unique_booking_code(
                self.db, max_attempts=self.code_max_attempts
            )
            self.db.add(
                Booking(
                    booking_code=booking_code,
                    property_id=property_id,
                    room_id=room_id,
                    guest_name=guest_name,
                    guest_email=placeholder_email(source),
                    check_in=event.start,
                    check_out=event.end,
                    guests=1,
                    total_price=0,
                    status=BookingStatus.CONFIRMED,
                    channel=source.channel,
                    imported_from_ical=True,
                    external_calendar_id=event.uid,
                    created_by_id=actor_id,
                )
            )
            await self.db.flush()
            return CREATED

        booking.check_in = event.start
        booking.check_out = event.end
        # Guest-submitted data wins over whatever the host typed on the platform
        if await self._check_in_count(booking.id) == 0:
            booking.guest_name = guest_name
        booking.updated_at = self.clock()
        await self.db.flush()
        return UPDATED

    async def _find_booking(self, room_id: UUID, source: ICalSource, uid: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(
                Booking.room_id == room_id,
                Booking.channel == source.channel,
                Booking.external_calendar_id == uid,
            )
        )
        return result.scalars().first()

    async def _check_in_count(self, booking_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(GuestCheckIn.id)).where(GuestCheckIn.booking_id == booking_id)
        )
        return result.scalar_one()

    async def _remove_dropped(self, room_id: UUID, source: ICalSource, seen_uids: set[str]) -> int:
        """Delete upcoming imported bookings no longer present in the feed."""
        today = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        result = await self.db.execute(
            select(Booking).where(
                Booking.room_id == room_id,
                Booking.channel == source.channel,
                Booking.imported_from_ical.is_(True),
                Booking.external_calendar_id.is_not(None),
                Booking.check_in >= today,
            )
        )
        removed = 0
        for booking in result.scalars().all():
            if booking.external_calendar_id in seen_uids:
                continue
            if await self._check_in_count(booking.id) > 0:
                logger.info(
                    f"[ICAL] Keeping {booking.booking_code}: dropped from {source.value} feed "
                    f"but has guest check-ins"
                )
                continue
            await self.db.delete(booking)
            removed += 1
        await self.db.flush()
        return removed


class ICalSyncService:
    """Runs the reconciler over a room's configured feeds, or over many rooms."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        feed_client: Optional[ICalFeedClient] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.settings = settings
        self.feed_client = feed_client or ICalFeedClient(
            user_agent=settings.ical_user_agent,
            timeout=settings.ical_fetch_timeout_seconds,
        )
        self.clock = clock

    def reconciler(self, mode: SyncMode, retention_days: int) -> CalendarReconciler:
        return CalendarReconciler(
            self.db,
            self.feed_client,
            retention_days=retention_days,
            mode=mode,
            default_guest_name=self.settings.ical_default_guest_name,
            code_max_attempts=self.settings.ical_code_max_attempts,
            clock=self.clock,
        )

    async def sync_room(
        self,
        room_id: UUID,
        actor_id: Optional[UUID],
        mode: SyncMode,
        retention_days: int,
    ) -> RoomSyncResult:
        """Sync every feed configured on a room and commit.

        Raises:
            RoomNotFoundError: unknown room
        """
        result = await self.db.execute(
            select(Room).options(selectinload(Room.property)).where(Room.id == room_id)
        )
        room = result.scalar_one_or_none()
        if room is None:
            raise RoomNotFoundError(room_id)
        return await self._sync_loaded_room(room, actor_id, mode, retention_days)

    async def _sync_loaded_room(
        self,
        room: Room,
        actor_id: Optional[UUID],
        mode: SyncMode,
        retention_days: int,
    ) -> RoomSyncResult:
        room_id = room.id
        room_result = RoomSyncResult(
            room_id=room_id,
            room_name=room.name,
            property_name=room.property.name if room.property else None,
        )
        feeds = [
            (ICalSource.AIRBNB, room.airbnb_ical_url),
            (ICalSource.BOOKING_COM, room.booking_com_ical_url),
        ]
        reconciler = self.reconciler(mode, retention_days)
        for source, url in feeds:
            if not url:
                continue
            room_result.syncs.append(await reconciler.sync_feed(room_id, url, source, actor_id))

        room.last_synced_at = self.clock()
        await self.db.commit()
        return room_result

    async def sync_rooms(
        self,
        actor_id: Optional[UUID],
        mode: SyncMode,
        retention_days: int,
        property_id: Optional[UUID] = None,
    ) -> SyncSummary:
        """Sync every room that has at least one feed URL (optionally one property)."""
        query = (
            select(Room)
            .options(selectinload(Room.property))
            .where(or_(Room.airbnb_ical_url.is_not(None), Room.booking_com_ical_url.is_not(None)))
            .order_by(Room.name)
        )
        if property_id:
            query = query.where(Room.property_id == property_id)

        result = await self.db.execute(query)
        rooms = result.scalars().all()

        if not rooms:
            return SyncSummary(
                message="No rooms with iCal calendars configured",
                timestamp=self.clock(),
            )

        details = []
        for room in rooms:
            details.append(await self._sync_loaded_room(room, actor_id, mode, retention_days))
        return summarize(details, self.clock())


def summarize(details: list[RoomSyncResult], timestamp: datetime) -> SyncSummary:
    """Aggregate per-room results into the endpoint response."""
    imported = updated = removed = failed = 0
    for room_result in details:
        for feed in room_result.syncs:
            if feed.success:
                imported += feed.imported
                updated += feed.updated
                removed += feed.removed
            else:
                failed += 1

    message = f"Sync completed: {imported} new bookings imported, {updated} updated"
    if removed:
        message += f", {removed} removed"
    message += f", {failed} errors"

    return SyncSummary(
        success=True,
        message=message,
        imported=imported,
        updated=updated,
        removed=removed,
        errors=failed,
        rooms_synced=len(details),
        timestamp=timestamp,
        details=details,
    )
