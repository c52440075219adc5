import os

# Settings are read when the package is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import uuid
from datetime import date, datetime

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from staydesk.core.database import Base, get_db
from staydesk.core.security import (
    AuthenticatedUser,
    get_current_user,
)
from staydesk.main import app
from staydesk.models import Booking, GuestCheckIn, Property, Room, User
from staydesk.models.enums import (
    BookingChannel,
    BookingStatus,
    CheckInStatus,
    DocumentType,
    UserRole,
)
from staydesk.services.ical_feed import ICalFeedClient, get_feed_client

FIXED_NOW = datetime(2025, 3, 1, 10, 0, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_feed(*events: str) -> str:
    """Wrap VEVENT bodies into a calendar document."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Test//Feed//EN",
    ]
    for body in events:
        lines.append("BEGIN:VEVENT")
        lines.extend(line.strip() for line in body.strip().splitlines())
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


def vevent(uid=None, start="20250315", end="20250318", summary=None) -> str:
    lines = []
    if uid is not None:
        lines.append(f"UID:{uid}")
    if start is not None:
        lines.append(f"DTSTART;VALUE=DATE:{start}")
    if end is not None:
        lines.append(f"DTEND;VALUE=DATE:{end}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    return "\n".join(lines)


class FeedServer:
    """Serves feed bodies per URL through httpx.MockTransport."""

    def __init__(self):
        self.responses: dict[str, tuple[int, str]] = {}
        self.requests: list[httpx.Request] = []

    def set(self, url: str, body: str, status_code: int = 200) -> None:
        self.responses[url] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.responses.get(str(request.url), (404, "Not Found"))
        return httpx.Response(status_code, text=body)

    def client(self) -> ICalFeedClient:
        return ICalFeedClient(
            user_agent="StayDesk-Test/1.0",
            timeout=5,
            transport=httpx.MockTransport(self.handler),
        )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite/aiosqlite need these for SAVEPOINT support
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def feed_server():
    return FeedServer()


@pytest.fixture
def feed_client(feed_server):
    return feed_server.client()


@pytest_asyncio.fixture
async def admin(db):
    user = User(
        firebase_uid="firebase-admin",
        email="admin@example.com",
        full_name="Admin",
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def room(db):
    prop = Property(name="Casa Sole", address="Via Roma 1", city="Lecce")
    db.add(prop)
    await db.flush()
    room = Room(
        property_id=prop.id,
        name="Camera Blu",
        max_guests=2,
        airbnb_ical_url="https://airbnb.test/calendar/ical/1.ics",
    )
    db.add(room)
    await db.commit()
    return room


async def add_booking(db, room, **overrides) -> Booking:
    values = dict(
        booking_code=f"BOOK-{uuid.uuid4().hex[:6].upper()}",
        property_id=room.property_id,
        room_id=room.id,
        guest_name="Mario Rossi",
        guest_email="mario@example.com",
        check_in=datetime(2025, 3, 10),
        check_out=datetime(2025, 3, 12),
        status=BookingStatus.CONFIRMED,
        channel=BookingChannel.DIRECT,
    )
    values.update(overrides)
    booking = Booking(**values)
    db.add(booking)
    await db.commit()
    return booking


async def add_check_in(db, booking) -> GuestCheckIn:
    check_in = GuestCheckIn(
        booking_id=booking.id,
        first_name="Jane",
        last_name="Doe",
        date_of_birth=date(1990, 1, 1),
        birth_city="Milano",
        birth_province="MI",
        residence_street="Via Verdi 2",
        residence_postal_code="20100",
        residence_city="Milano",
        residence_province="MI",
        fiscal_code="DOEJNA90A41F205X",
        document_type=DocumentType.PASSAPORTO,
        document_number="YA1234567",
        document_issue_date=date(2020, 1, 1),
        document_expiry_date=date(2030, 1, 1),
        status=CheckInStatus.PENDING,
    )
    db.add(check_in)
    await db.commit()
    return check_in


@pytest_asyncio.fixture
async def client(db, admin, feed_client):
    """API client authenticated as an active admin."""

    async def _get_db():
        yield db

    def _current_user():
        user = AuthenticatedUser(uid=admin.firebase_uid, email=admin.email, email_verified=True)
        user.db_user_id = admin.id
        user.role = UserRole.ADMIN
        user.is_active = True
        return user

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_feed_client] = lambda: feed_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
