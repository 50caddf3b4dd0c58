"""Shared test fixtures.

Each test gets its own SQLite database file, a FixedClock pinned to a
Monday morning in the venue zone, and a dispatcher that records events
instead of sending them.
"""

import os

# Must be set before polibook.core.database builds the global engine
os.environ.setdefault("PB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PB_NOTIFICATION_BACKEND", "log")

from datetime import date, datetime, time  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from polibook.core.auth import Caller, CallerRole, create_access_token  # noqa: E402
from polibook.core.clock import VENUE_TZ, FixedClock  # noqa: E402
from polibook.core.database import get_db  # noqa: E402
from polibook.core.dependencies import get_clock, get_dispatcher  # noqa: E402
from polibook.main import app  # noqa: E402
from polibook.models import Base, Court, CourtType, Reservation, ReservationStatus, Venue  # noqa: E402

# Monday 16 March 2026, 10:30 in Madrid
NOW = datetime(2026, 3, 16, 10, 30, tzinfo=VENUE_TZ)
TODAY = NOW.date()
TOMORROW = date(2026, 3, 17)


class RecordingDispatcher:
    def __init__(self):
        self.events = []

    async def notify(self, event) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind.value for e in self.events]


def make_caller(
    user_id: str = "u-1",
    name: str = "Ana Garcia",
    role: CallerRole = CallerRole.USER,
    venue_id: int | None = None,
    email: str | None = "ana@example.com",
) -> Caller:
    return Caller(user_id=user_id, name=name, role=role, national_id="12345678Z", email=email, venue_id=venue_id)


def auth_headers(
    user_id: str = "u-1",
    name: str = "Ana Garcia",
    role: str = "user",
    venue_id: int | None = None,
) -> dict:
    claims = {"name": name, "role": role, "national_id": "12345678Z", "email": f"{user_id}@example.com"}
    if venue_id is not None:
        claims["venue_id"] = venue_id
    return {"Authorization": f"Bearer {create_access_token(user_id, claims)}"}


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'polibook.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def catalog_data(session_factory):
    """Two venues; the first has a tennis court, a padel court and a court under maintenance."""
    async with session_factory() as session:
        centro = Venue(name="Polideportivo Centro", address="Calle Mayor 1", phone="910000000")
        norte = Venue(name="Polideportivo Norte", address="Avenida Norte 20")
        session.add_all([centro, norte])
        await session.flush()

        tennis = Court(venue_id=centro.id, name="Pista 1", court_type=CourtType.TENNIS, hourly_price=Decimal("10.00"))
        padel = Court(venue_id=centro.id, name="Pista 2", court_type=CourtType.PADEL, hourly_price=Decimal("12.50"))
        closed = Court(
            venue_id=centro.id,
            name="Pista 3",
            court_type=CourtType.FUTSAL,
            hourly_price=Decimal("30.00"),
            under_maintenance=True,
        )
        session.add_all([tennis, padel, closed])
        await session.commit()

        return {"centro": centro, "norte": norte, "tennis": tennis, "padel": padel, "closed": closed}


@pytest.fixture
def add_reservation(session_factory):
    """Insert a reservation directly, bypassing the lifecycle rules."""

    async def _add(
        court,
        reservation_date: date,
        start_hour: int,
        end_hour: int,
        status: ReservationStatus = ReservationStatus.PENDING,
        user_id: str = "u-1",
        price: Decimal = Decimal("10.00"),
    ) -> Reservation:
        async with session_factory() as session:
            reservation = Reservation(
                court_id=court.id,
                venue_id=court.venue_id,
                user_id=user_id,
                user_name="Ana Garcia",
                reservation_date=reservation_date,
                start_time=time(start_hour, 0),
                end_time=time(end_hour, 0),
                price=price,
                status=status,
            )
            session.add(reservation)
            await session.commit()
            return reservation

    return _add


@pytest.fixture
async def client(session_factory, clock, dispatcher):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
