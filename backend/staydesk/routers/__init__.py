"""API Routers for StayDesk."""

from staydesk.routers.properties import router as properties_router
from staydesk.routers.rooms import router as rooms_router
from staydesk.routers.bookings import router as bookings_router
from staydesk.routers.public import router as public_router
from staydesk.routers.ical import router as ical_router

__all__ = [
    "properties_router",
    "rooms_router",
    "bookings_router",
    "public_router",
    "ical_router",
]
