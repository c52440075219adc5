"""iCal feed client: download and parse channel calendars (Airbnb, Booking.com).

The platforms publish one feed per listing at a URL with an embedded token.
Feeds are fetched anonymously over HTTP GET and parsed with ``icalendar``.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timedelta, timezone
from typing import Optional

import httpx
from icalendar import Calendar

from staydesk.core.config import get_settings

logger = logging.getLogger(__name__)

# Returned in the body when a platform has revoked the export token
INVALID_TOKEN_MARKER = "invalid token"
BODY_EXCERPT_CHARS = 200


class FeedError(Exception):
    """Feed-level failure: the whole (room, source) sync fails."""


class FeedFetchError(FeedError):
    """The feed could not be downloaded (transport error, timeout, non-2xx)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body_excerpt: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body_excerpt = body_excerpt
        super().__init__(message)


class FeedExpiredError(FeedFetchError):
    """The platform rejected the feed token; the URL must be regenerated, not retried."""


class FeedParseError(FeedError):
    """The downloaded document is not a valid iCalendar feed."""


@dataclass
class FeedEvent:
    """One VEVENT, with dates normalised to naive UTC datetimes."""

    uid: str
    summary: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]
    uid_generated: bool = False
    # Why the dates could not be resolved, if they could not
    problem: Optional[str] = None


def _excerpt(body: str) -> str:
    body = " ".join(body.split())
    return body[:BODY_EXCERPT_CHARS]


def _looks_expired(body: str) -> bool:
    return INVALID_TOKEN_MARKER in body.lower()


def to_naive_utc(value) -> Optional[datetime]:
    """Convert an iCal DATE / DATE-TIME value to a naive UTC datetime.

    All-day dates map to midnight. Floating datetimes are kept as-is.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, dt_time.min)
    return None


def _event_end(component, start: Optional[datetime]) -> Optional[datetime]:
    dtend = component.get("DTEND")
    if dtend is not None:
        return to_naive_utc(dtend.dt)
    if start is None:
        return None
    duration = component.get("DURATION")
    if duration is not None:
        return start + duration.dt
    # Neither DTEND nor DURATION: an all-day event lasts one day, a timed one is instantaneous
    raw_start = component.get("DTSTART").dt
    if isinstance(raw_start, date) and not isinstance(raw_start, datetime):
        return start + timedelta(days=1)
    return start


def parse_feed(ical_text: str) -> list[FeedEvent]:
    """Parse an iCalendar document into FeedEvents.

    Events without a UID get a timestamp-derived placeholder instead of being
    dropped. Events with unresolvable dates are returned with ``start``/``end``
    set to None so the caller can report them.

    Raises:
        FeedParseError: the document cannot be parsed as iCalendar
    """
    try:
        calendar = Calendar.from_ical(ical_text)
    except Exception as e:
        raise FeedParseError(f"Invalid iCal document: {e}") from e

    stamp = int(time.time() * 1000)
    events: list[FeedEvent] = []
    for index, component in enumerate(calendar.walk("VEVENT")):
        raw_uid = component.get("UID")
        uid = str(raw_uid).strip() if raw_uid is not None else ""
        uid_generated = not uid
        if uid_generated:
            uid = f"event-{stamp}-{index}"

        raw_summary = component.get("SUMMARY")
        summary = str(raw_summary).strip() if raw_summary is not None else None

        problem = None
        try:
            dtstart = component.get("DTSTART")
            start = to_naive_utc(dtstart.dt) if dtstart is not None else None
            end = _event_end(component, start)
        except (AttributeError, TypeError, ValueError) as e:
            start = end = None
            problem = f"invalid dates ({e})"
        if problem is None and (start is None or end is None):
            problem = "missing dates"

        events.append(
            FeedEvent(
                uid=uid,
                summary=summary or None,
                start=start,
                end=end,
                uid_generated=uid_generated,
                problem=problem,
            )
        )
    return events


class ICalFeedClient:
    """HTTP client for channel calendar feeds."""

    def __init__(
        self,
        user_agent: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> str:
        """Download a feed and return its text.

        Raises:
            FeedExpiredError: the platform reports the feed token as invalid
            FeedFetchError: timeout, transport failure or non-2xx response
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            raise FeedFetchError(f"Calendar download timed out after {self.timeout:g}s") from e
        except httpx.RequestError as e:
            raise FeedFetchError(f"Calendar download failed: {e}") from e

        body = response.text
        is_calendar = "BEGIN:VCALENDAR" in body

        if not is_calendar and _looks_expired(body):
            logger.warning(f"[ICAL] Feed token rejected ({response.status_code})")
            raise FeedExpiredError(
                "Calendar link is no longer valid: regenerate the iCal export URL "
                "on the booking platform and update the room",
                status_code=response.status_code,
                body_excerpt=_excerpt(body),
            )

        if not response.is_success:
            excerpt = _excerpt(body)
            message = f"Calendar download failed: HTTP {response.status_code} {response.reason_phrase}"
            if excerpt:
                message += f" ({excerpt})"
            raise FeedFetchError(
                message,
                status_code=response.status_code,
                body_excerpt=excerpt,
            )

        return body

    async def fetch_events(self, url: str) -> list[FeedEvent]:
        """Download and parse a feed."""
        return parse_feed(await self.fetch(url))


# Singleton
_feed_client: Optional[ICalFeedClient] = None


def get_feed_client() -> ICalFeedClient:
    """Get the shared feed client configured from settings."""
    global _feed_client
    if _feed_client is None:
        settings = get_settings()
        _feed_client = ICalFeedClient(
            user_agent=settings.ical_user_agent,
            timeout=settings.ical_fetch_timeout_seconds,
        )
    return _feed_client
