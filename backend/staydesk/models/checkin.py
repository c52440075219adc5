"""Guest check-in model (guest-submitted registration data)."""

import uuid
from datetime import datetime, date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Enum as SQLEnum, Boolean, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.core.database import Base
from staydesk.models.enums import DocumentType, CheckInStatus

if TYPE_CHECKING:
    from staydesk.models.booking import Booking


class GuestCheckIn(Base):
    """Identity data submitted by a guest through the public check-in form.

    Any booking with at least one of these is guest-data-bearing and its guest
    fields are no longer overwritten by calendar sync.
    """

    __tablename__ = "guest_check_ins"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    birth_city: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_province: Mapped[str] = mapped_column(String(10), nullable=False)

    residence_street: Mapped[str] = mapped_column(String(255), nullable=False)
    residence_postal_code: Mapped[str] = mapped_column(String(20), nullable=False)
    residence_city: Mapped[str] = mapped_column(String(100), nullable=False)
    residence_province: Mapped[str] = mapped_column(String(10), nullable=False)
    fiscal_code: Mapped[str] = mapped_column(String(32), nullable=False)

    document_type: Mapped[DocumentType] = mapped_column(SQLEnum(DocumentType), nullable=False)
    document_number: Mapped[str] = mapped_column(String(50), nullable=False)
    document_issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    document_expiry_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Tourist tax exemption
    is_exempt: Mapped[bool] = mapped_column(Boolean, default=False)
    exemption_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[CheckInStatus] = mapped_column(
        SQLEnum(CheckInStatus),
        default=CheckInStatus.PENDING,
        nullable=False,
        index=True,
    )

    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="guest_check_ins")
