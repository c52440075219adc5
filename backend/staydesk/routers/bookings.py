"""Bookings router."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.core.config import get_settings
from staydesk.core.database import get_db
from staydesk.core.security import require_staff, require_manager, AuthenticatedUser
from staydesk.models.booking import Booking
from staydesk.models.checkin import GuestCheckIn
from staydesk.models.property import Room
from staydesk.models.enums import BookingStatus
from staydesk.schemas.booking import BookingCreate, BookingUpdate, BookingResponse
from staydesk.schemas.checkin import GuestCheckInResponse
from staydesk.services.booking_code import CodeGenerationExhaustedError, generate_unique_booking_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


async def _check_in_count(db: AsyncSession, booking_id: UUID) -> int:
    result = await db.execute(
        select(func.count(GuestCheckIn.id)).where(GuestCheckIn.booking_id == booking_id)
    )
    return result.scalar() or 0


def _to_response(booking: Booking, check_in_count: int = 0) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    response.check_in_count = check_in_count
    return response


async def _get_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Create a booking taken outside the channels."""
    room_result = await db.execute(select(Room).where(Room.id == data.room_id))
    room = room_result.scalar_one_or_none()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")

    try:
        code = await generate_unique_booking_code(db, get_settings().ical_code_max_attempts)
    except CodeGenerationExhaustedError as e:
        logger.error(f"[BOOKING] {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not allocate a booking code, retry later",
        )

    booking = Booking(
        booking_code=code,
        property_id=room.property_id,
        room_id=room.id,
        created_by_id=current_user.db_user_id,
        guest_name=data.guest_name,
        guest_email=data.guest_email,
        guest_phone=data.guest_phone,
        guests=data.guests,
        check_in=data.check_in,
        check_out=data.check_out,
        total_price=data.total_price,
        status=data.status,
        channel=data.channel,
        imported_from_ical=False,
        notes=data.notes,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)

    logger.info(f"[BOOKING] Created {booking.booking_code} for room {room.id}")
    return _to_response(booking)


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    room_id: Optional[UUID] = Query(None),
    property_id: Optional[UUID] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """List bookings, soonest check-in first."""
    query = (
        select(Booking, func.count(GuestCheckIn.id).label("check_in_count"))
        .outerjoin(GuestCheckIn, GuestCheckIn.booking_id == Booking.id)
        .group_by(Booking.id)
        .order_by(Booking.check_in)
    )
    if room_id:
        query = query.where(Booking.room_id == room_id)
    if property_id:
        query = query.where(Booking.property_id == property_id)
    if status_filter:
        query = query.where(Booking.status == status_filter)

    result = await db.execute(query)
    return [_to_response(row[0], row[1]) for row in result.all()]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Get a booking by ID."""
    booking = await _get_booking(db, booking_id)
    return _to_response(booking, await _check_in_count(db, booking_id))


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: UUID,
    data: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Update a booking."""
    booking = await _get_booking(db, booking_id)

    update_data = data.model_dump(exclude_unset=True)
    check_in = update_data.get("check_in", booking.check_in)
    check_out = update_data.get("check_out", booking.check_out)
    if check_out <= check_in:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="check_out must be after check_in",
        )

    for field, value in update_data.items():
        setattr(booking, field, value)

    await db.commit()
    await db.refresh(booking)

    return _to_response(booking, await _check_in_count(db, booking_id))


@router.get("/{booking_id}/check-ins", response_model=List[GuestCheckInResponse])
async def list_booking_check_ins(
    booking_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Guest registrations submitted for a booking."""
    await _get_booking(db, booking_id)
    result = await db.execute(
        select(GuestCheckIn)
        .where(GuestCheckIn.booking_id == booking_id)
        .order_by(GuestCheckIn.submitted_at)
    )
    return [GuestCheckInResponse.model_validate(c) for c in result.scalars().all()]
