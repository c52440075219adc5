"""Booking model."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    String,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    Text,
    Integer,
    Boolean,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.core.database import Base
from staydesk.models.enums import BookingStatus, BookingChannel

if TYPE_CHECKING:
    from staydesk.models.property import Property, Room
    from staydesk.models.checkin import GuestCheckIn
    from staydesk.models.user import User


class Booking(Base):
    """A stay in a room, entered manually or imported from a channel calendar.

    Imported bookings are keyed by (room_id, channel, external_calendar_id).
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Guest-facing code used by the public check-in form (BOOK-XXXXXX)
    booking_code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)

    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Guest info
    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    guests: Mapped[int] = mapped_column(Integer, default=1)

    # Stay
    check_in: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    check_out: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    channel: Mapped[BookingChannel] = mapped_column(
        SQLEnum(BookingChannel),
        default=BookingChannel.DIRECT,
        nullable=False,
    )

    # Channel calendar import
    imported_from_ical: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    external_calendar_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    property: Mapped["Property"] = relationship("Property")
    room: Mapped["Room"] = relationship("Room", back_populates="bookings")
    created_by: Mapped[Optional["User"]] = relationship("User")
    guest_check_ins: Mapped[list["GuestCheckIn"]] = relationship(
        "GuestCheckIn", back_populates="booking", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint(
            "room_id",
            "channel",
            "external_calendar_id",
            name="uq_booking_room_channel_external_uid",
        ),
    )
