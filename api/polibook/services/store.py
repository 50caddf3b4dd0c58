"""Reservation persistence.

Thin CRUD over the reservations table. All reads go through _intact() so a
corrupted row surfaces as InternalError instead of being coerced. Driver
failures that may succeed on a second attempt become TransientStoreError.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import date, time
from typing import TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.errors import InternalError, SlotTaken, TransientStoreError
from polibook.models.reservation import ACTIVE_STATUSES, Reservation, ReservationStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

_REQUIRED_FIELDS = ("court_id", "venue_id", "user_id", "reservation_date", "start_time", "end_time", "status", "price")


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate transient driver failures raised inside the block."""
    try:
        yield
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        logger.warning("Transient store error during %s: %s", operation, exc)
        raise TransientStoreError(f"Reservation store unavailable during {operation}. Please retry.") from exc
    except LookupError as exc:
        # Raised by the Enum type when a stored status is not a known value
        logger.error("Corrupt reservation row during %s: %s", operation, exc)
        raise InternalError("Stored reservation has an unknown status.") from exc


async def retry_on_transient(db: AsyncSession, operation: Callable[[], Awaitable[T]]) -> T:
    """Run operation, retrying once (no backoff) if the store reports a transient failure."""
    try:
        return await operation()
    except TransientStoreError:
        await db.rollback()
        logger.info("Retrying once after transient store error")
        return await operation()


def _intact(reservation: Reservation) -> Reservation:
    missing = [f for f in _REQUIRED_FIELDS if getattr(reservation, f) is None]
    if missing or reservation.end_time <= reservation.start_time:
        logger.error("Reservation %s failed integrity check (missing=%s)", reservation.id, missing)
        raise InternalError(f"Reservation #{reservation.id} is corrupt.")
    return reservation


async def add_reservation(db: AsyncSession, reservation: Reservation) -> Reservation:
    """Insert and flush. A unique-index hit means another writer won the slot."""
    db.add(reservation)
    with store_errors("insert"):
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            raise SlotTaken("Court already booked at that time.") from exc
    return reservation


async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation | None:
    with store_errors("fetch"):
        result = await db.execute(select(Reservation).where(Reservation.id == reservation_id))
        reservation = result.scalar_one_or_none()
    return _intact(reservation) if reservation else None


async def list_active_for_day(db: AsyncSession, court_id: int, reservation_date: date) -> list[Reservation]:
    """Active reservations on a court for one date, earliest first."""
    with store_errors("fetch"):
        result = await db.execute(
            select(Reservation)
            .where(
                Reservation.court_id == court_id,
                Reservation.reservation_date == reservation_date,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Reservation.start_time)
        )
        rows = result.scalars().all()
    return [_intact(r) for r in rows]


async def first_overlapping(
    db: AsyncSession,
    court_id: int,
    reservation_date: date,
    start_time: time,
    end_time: time,
) -> Reservation | None:
    """First active reservation whose [start, end) overlaps the given window."""
    with store_errors("conflict check"):
        result = await db.execute(
            select(Reservation)
            .where(
                Reservation.court_id == court_id,
                Reservation.reservation_date == reservation_date,
                Reservation.status.in_(ACTIVE_STATUSES),
                Reservation.start_time < end_time,
                Reservation.end_time > start_time,
            )
            .order_by(Reservation.start_time)
            .limit(1)
        )
        conflict = result.scalar_one_or_none()
    return _intact(conflict) if conflict else None


async def list_for_user(db: AsyncSession, user_id: str) -> list[Reservation]:
    with store_errors("fetch"):
        result = await db.execute(
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.start_time.desc())
        )
        rows = result.scalars().all()
    return [_intact(r) for r in rows]


async def list_for_venue(db: AsyncSession, venue_id: int) -> list[Reservation]:
    with store_errors("fetch"):
        result = await db.execute(
            select(Reservation)
            .where(Reservation.venue_id == venue_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.start_time.desc())
        )
        rows = result.scalars().all()
    return [_intact(r) for r in rows]


async def transition(
    db: AsyncSession,
    reservation_id: int,
    from_statuses: Iterable[ReservationStatus],
    to_status: ReservationStatus,
    **fields,
) -> bool:
    """Conditionally move a reservation to to_status.

    The UPDATE only matches while the row is still in one of from_statuses,
    so a concurrent transition makes this return False instead of
    overwriting it.
    """
    with store_errors("update"):
        result = await db.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id, Reservation.status.in_(tuple(from_statuses)))
            .values(status=to_status, **fields)
            .execution_options(synchronize_session=False)
        )
    return result.rowcount == 1


async def count_active_for_court(db: AsyncSession, court_id: int) -> int:
    with store_errors("fetch"):
        result = await db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.court_id == court_id,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
        )
        return result.scalar_one()


async def delete_cancelled_for_court(db: AsyncSession, court_id: int) -> int:
    with store_errors("delete"):
        result = await db.execute(
            delete(Reservation)
            .where(Reservation.court_id == court_id, Reservation.status == ReservationStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
    return result.rowcount
