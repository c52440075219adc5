"""iCal sync log model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Enum as SQLEnum, Text, Integer, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staydesk.core.database import Base
from staydesk.models.enums import ICalSource

if TYPE_CHECKING:
    from staydesk.models.property import Room


class ICalSync(Base):
    """Append-only record of one feed sync attempt for a (room, source)."""

    __tablename__ = "ical_syncs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    source: Mapped[ICalSource] = mapped_column(SQLEnum(ICalSource), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    events_imported: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    synced_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    room: Mapped["Room"] = relationship("Room", back_populates="sync_logs")
