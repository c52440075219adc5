"""Public guest check-in router (no authentication, keyed by booking code)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from staydesk.core.database import get_db
from staydesk.models.booking import Booking
from staydesk.models.checkin import GuestCheckIn
from staydesk.models.enums import BookingStatus, CheckInStatus
from staydesk.schemas.booking import PublicBookingResponse
from staydesk.schemas.checkin import GuestCheckInCreate, GuestCheckInCreated
from staydesk.services.booking_code import is_valid_booking_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


async def _booking_by_code(db: AsyncSession, booking_code: str) -> Booking:
    code = booking_code.strip().upper()
    if not is_valid_booking_code(code):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid booking code format")

    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.room), selectinload(Booking.property))
        .where(Booking.booking_code == code)
    )
    booking = result.scalar_one_or_none()
    if not booking or booking.status == BookingStatus.CANCELLED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.get("/checkin/{booking_code}", response_model=PublicBookingResponse)
async def get_checkin_booking(
    booking_code: str,
    db: AsyncSession = Depends(get_db),
):
    """Look up a booking by the code the guest received."""
    booking = await _booking_by_code(db, booking_code)

    count_result = await db.execute(
        select(func.count(GuestCheckIn.id)).where(GuestCheckIn.booking_id == booking.id)
    )

    return PublicBookingResponse(
        booking_code=booking.booking_code,
        property_name=booking.property.name,
        room_name=booking.room.name,
        guest_name=booking.guest_name,
        check_in=booking.check_in,
        check_out=booking.check_out,
        guests=booking.guests,
        check_in_submitted=(count_result.scalar() or 0) > 0,
    )


@router.post("/checkin", response_model=GuestCheckInCreated, status_code=status.HTTP_201_CREATED)
async def submit_checkin(
    data: GuestCheckInCreate,
    db: AsyncSession = Depends(get_db),
):
    """Store a guest's registration data.

    From here on, calendar sync no longer overwrites the booking's guest data.
    """
    booking = await _booking_by_code(db, data.booking_code)

    check_in = GuestCheckIn(
        booking_id=booking.id,
        status=CheckInStatus.PENDING,
        **data.model_dump(exclude={"booking_code"}),
    )
    db.add(check_in)
    await db.commit()
    await db.refresh(check_in)

    logger.info(f"[CHECKIN] Guest data submitted for {booking.booking_code}")
    return GuestCheckInCreated(check_in_id=check_in.id)
