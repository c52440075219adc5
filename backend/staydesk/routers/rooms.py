"""Rooms router: room settings, channel calendar sync and calendar export."""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.core.config import get_settings
from staydesk.core.database import get_db
from staydesk.core.security import require_staff, require_manager, require_admin, AuthenticatedUser
from staydesk.models.property import Room
from staydesk.models.enums import SyncMode
from staydesk.schemas.property import RoomUpdate, RoomResponse
from staydesk.schemas.ical import RoomICalConfigUpdate, ICalSyncLogResponse, SyncSummary
from staydesk.services.ical_feed import ICalFeedClient, get_feed_client
from staydesk.services.ical_sync import ICalSyncService, RoomNotFoundError, summarize
from staydesk.services.ical_export import export_room_calendar
from staydesk.services.sync_log import SyncLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


async def _get_room(db: AsyncSession, room_id: UUID) -> Room:
    result = await db.execute(select(Room).where(Room.id == room_id))
    room = result.scalar_one_or_none()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Get a room by ID."""
    return RoomResponse.model_validate(await _get_room(db, room_id))


@router.patch("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: UUID,
    data: RoomUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Update a room."""
    room = await _get_room(db, room_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(room, field, value)

    await db.commit()
    await db.refresh(room)

    return RoomResponse.model_validate(room)


@router.patch("/{room_id}/ical", response_model=RoomResponse)
async def update_room_ical(
    room_id: UUID,
    data: RoomICalConfigUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_admin),
):
    """Set or clear the Airbnb / Booking.com calendar URLs of a room.

    Admin only: the URLs embed the platforms' export tokens.
    """
    room = await _get_room(db, room_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(room, field, str(value) if value is not None else None)

    await db.commit()
    await db.refresh(room)

    logger.info(f"[ICAL] Calendar URLs updated for room {room_id}")
    return RoomResponse.model_validate(room)


@router.post("/{room_id}/ical-sync", response_model=SyncSummary)
async def sync_room_calendars(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
    feed_client: ICalFeedClient = Depends(get_feed_client),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Sync a room's channel calendars now.

    Upcoming imported bookings that disappeared from a feed are removed.
    """
    settings = get_settings()
    service = ICalSyncService(db, settings, feed_client)

    try:
        room_result = await service.sync_room(
            room_id,
            actor_id=current_user.db_user_id,
            mode=SyncMode.RECONCILE,
            retention_days=settings.ical_manual_retention_days,
        )
    except RoomNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    return summarize([room_result], datetime.utcnow())


@router.get("/{room_id}/ical-sync/logs", response_model=List[ICalSyncLogResponse])
async def list_sync_logs(
    room_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Sync history of a room, newest first."""
    await _get_room(db, room_id)
    logs = await SyncLogService(db).list_for_room(room_id, limit=limit)
    return [ICalSyncLogResponse.model_validate(entry) for entry in logs]


@router.get("/{room_id}/ical-export")
@router.get("/{room_id}/calendar.ics")
async def export_room_ical(
    room_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Public iCal feed of a room's bookings, for the platforms to import.

    Unauthenticated: the platforms fetch it anonymously.
    """
    try:
        room, body = await export_room_calendar(db, room_id, get_settings().ical_export_timezone)
    except RoomNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    filename = f"room-{room.id}.ics"
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
