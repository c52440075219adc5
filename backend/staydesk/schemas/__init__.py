"""Pydantic schemas for the StayDesk API."""

from staydesk.schemas.property import *
from staydesk.schemas.booking import *
from staydesk.schemas.checkin import *
from staydesk.schemas.ical import *
