"""iCal sync log service."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.models.ical_sync import ICalSync
from staydesk.models.enums import ICalSource


class SyncLogService:
    """Service for appending and reading iCal sync log entries.

    Entries are never updated or deleted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        room_id: UUID,
        source: ICalSource,
        success: bool,
        events_imported: int = 0,
        error_message: Optional[str] = None,
    ) -> ICalSync:
        """Create a sync log entry."""
        entry = ICalSync(
            room_id=room_id,
            source=source,
            success=success,
            events_imported=events_imported,
            error_message=error_message,
            synced_at=datetime.utcnow(),
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def log_success(self, room_id: UUID, source: ICalSource, events_imported: int) -> ICalSync:
        """Log a sync whose feed was fetched and parsed."""
        return await self.log(room_id, source, success=True, events_imported=events_imported)

    async def log_failure(self, room_id: UUID, source: ICalSource, error_message: str) -> ICalSync:
        """Log a sync that failed at feed level."""
        return await self.log(room_id, source, success=False, error_message=error_message)

    async def list_for_room(self, room_id: UUID, limit: int = 50) -> list[ICalSync]:
        """Most recent entries first."""
        result = await self.db.execute(
            select(ICalSync)
            .where(ICalSync.room_id == room_id)
            .order_by(ICalSync.synced_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
