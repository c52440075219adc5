"""Batch calendar sync: operator "sync all" and the scheduled cron import."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.core.config import get_settings
from staydesk.core.database import get_db
from staydesk.core.security import require_manager, verify_cron_secret, AuthenticatedUser
from staydesk.models.user import User
from staydesk.models.enums import SyncMode, UserRole
from staydesk.schemas.ical import SyncAllRequest, SyncSummary
from staydesk.services.ical_feed import ICalFeedClient, get_feed_client
from staydesk.services.ical_sync import ICalSyncService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ical"])


@router.post("/ical/sync-all", response_model=SyncSummary)
async def sync_all_calendars(
    data: Optional[SyncAllRequest] = None,
    db: AsyncSession = Depends(get_db),
    feed_client: ICalFeedClient = Depends(get_feed_client),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Sync every room with a configured calendar, optionally within one property."""
    settings = get_settings()
    property_id = data.property_id if data else None

    logger.info(f"[ICAL] Sync-all requested by {current_user.email} (property={property_id})")
    summary = await ICalSyncService(db, settings, feed_client).sync_rooms(
        actor_id=current_user.db_user_id,
        mode=SyncMode.RECONCILE,
        retention_days=settings.ical_manual_retention_days,
        property_id=property_id,
    )
    logger.info(f"[ICAL] {summary.message}")
    return summary


@router.get(
    "/cron/sync-ical",
    response_model=SyncSummary,
    dependencies=[Depends(verify_cron_secret)],
)
async def cron_sync_calendars(
    db: AsyncSession = Depends(get_db),
    feed_client: ICalFeedClient = Depends(get_feed_client),
):
    """Scheduled import of every configured calendar.

    Import only: bookings that left a feed are kept until an operator syncs.
    """
    settings = get_settings()

    result = await db.execute(
        select(User)
        .where(User.role == UserRole.ADMIN, User.is_active == True)  # noqa: E712
        .order_by(User.created_at)
        .limit(1)
    )
    admin = result.scalar_one_or_none()
    if not admin:
        logger.error("[CRON] iCal sync aborted: no active admin user to attribute imports to")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No admin user found",
        )

    summary = await ICalSyncService(db, settings, feed_client).sync_rooms(
        actor_id=admin.id,
        mode=SyncMode.IMPORT,
        retention_days=settings.ical_cron_retention_days,
    )
    logger.info(f"[CRON] {summary.message}")
    return summary
