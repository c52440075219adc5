"""Services for StayDesk."""

from staydesk.services.booking_code import generate_unique_booking_code, is_valid_booking_code
from staydesk.services.sync_log import SyncLogService
from staydesk.services.ical_feed import ICalFeedClient, get_feed_client
from staydesk.services.ical_sync import CalendarReconciler, ICalSyncService
from staydesk.services.ical_export import export_room_calendar

__all__ = [
    "generate_unique_booking_code",
    "is_valid_booking_code",
    "SyncLogService",
    "ICalFeedClient",
    "get_feed_client",
    "CalendarReconciler",
    "ICalSyncService",
    "export_room_calendar",
]
