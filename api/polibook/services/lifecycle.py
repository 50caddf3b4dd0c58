"""Reservation lifecycle: create, cancel, pay.

States: pending -> paid, pending/confirmed/paid -> cancelled. "Completed" is
never stored; it is derived at read time (booking_rules.effective_status).

Create is the one operation with a real race: the conflict check and the
insert must be atomic per (court, date). Three guards, innermost last:
  1. slot_lock(court, date) serialises creators inside this process;
  2. SELECT ... FOR UPDATE on the court row serialises them across processes;
  3. the partial unique index on (court, date, start_time) turns any
     remaining same-start collision into SlotTaken.
The insert is committed before the in-process lock is released.

Cancel and pay are single-row conditional updates; if another request
changed the row first, the rule is re-evaluated against the fresh row.
"""

import logging
from collections.abc import Iterable
from datetime import date, time

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from polibook.core.auth import Caller
from polibook.core.clock import Clock
from polibook.core.errors import InternalError, NotFound
from polibook.models.reservation import ACTIVE_STATUSES, Reservation, ReservationStatus
from polibook.services import catalog, store
from polibook.services.booking_rules import cancellation_violation, payment_violation, window_violation
from polibook.services.conflicts import check_court_conflict
from polibook.services.notifications import EventKind, NotificationDispatcher, ReservationEvent
from polibook.services.pricing import AddOn, estimate
from polibook.services.slot_lock import slot_lock

logger = logging.getLogger(__name__)


def can_view(reservation: Reservation, caller: Caller) -> bool:
    """Owners see their reservations; admins see those at venues they manage."""
    return reservation.user_id == caller.user_id or caller.manages_venue(reservation.venue_id)


async def get_visible_reservation(db: AsyncSession, reservation_id: int, caller: Caller) -> Reservation:
    reservation = await store.get_reservation(db, reservation_id)
    # Other users' reservations are reported as missing, not forbidden
    if reservation is None or not can_view(reservation, caller):
        raise NotFound("Reservation not found.")
    return reservation


async def create_reservation(
    db: AsyncSession,
    caller: Caller,
    court_id: int,
    reservation_date: date,
    start_time: time,
    end_time: time,
    add_ons: Iterable[AddOn],
    clock: Clock,
    dispatcher: NotificationDispatcher,
) -> Reservation:
    """Book a court for the caller. New reservations start pending.

    Raises InvalidWindow, ResourceUnavailable or SlotTaken.
    """
    add_ons = set(add_ons)

    violation = window_violation(reservation_date, start_time, end_time, clock.now())
    if violation:
        raise violation

    async with slot_lock(court_id, reservation_date):
        court = await catalog.get_bookable_court(db, court_id, for_update=True)
        price = estimate(court, start_time, end_time, add_ons)

        conflict = await check_court_conflict(db, court_id, reservation_date, start_time, end_time)
        if conflict:
            raise conflict

        reservation = Reservation(
            court_id=court.id,
            venue_id=court.venue_id,
            user_id=caller.user_id,
            user_name=caller.name,
            user_national_id=caller.national_id,
            user_email=caller.email,
            reservation_date=reservation_date,
            start_time=start_time,
            end_time=end_time,
            child_care=AddOn.CHILD_CARE in add_ons,
            price=price,
            status=ReservationStatus.PENDING,
        )
        await store.add_reservation(db, reservation)
        with store.store_errors("commit"):
            await db.commit()

    logger.info(
        "Reservation %s created: court %s on %s %s-%s for %s",
        reservation.id,
        court_id,
        reservation_date,
        start_time.strftime("%H:%M"),
        end_time.strftime("%H:%M"),
        caller.user_id,
    )
    await dispatcher.notify(ReservationEvent.from_reservation(EventKind.RESERVATION_CREATED, reservation))
    return reservation


async def cancel_reservation(
    db: AsyncSession,
    reservation_id: int,
    caller: Caller,
    clock: Clock,
    dispatcher: NotificationDispatcher,
) -> Reservation:
    """Cancel up to the cutoff before start.

    Raises AlreadyCancelled, AlreadyPast or TooCloseToStart.
    """
    reservation = await get_visible_reservation(db, reservation_id, caller)
    now = clock.now()

    violation = cancellation_violation(reservation, now)
    if violation:
        raise violation

    changed = await store.transition(
        db, reservation.id, ACTIVE_STATUSES, ReservationStatus.CANCELLED, cancelled_at=now
    )
    if not changed:
        # Lost a race with another transition; judge the fresh row
        await _reload(db, reservation)
        raise cancellation_violation(reservation, now) or _lost_update(reservation)

    await _commit_transition(db, reservation, status=ReservationStatus.CANCELLED, cancelled_at=now)
    logger.info("Reservation %s cancelled by %s", reservation.id, caller.user_id)
    await dispatcher.notify(ReservationEvent.from_reservation(EventKind.RESERVATION_CANCELLED, reservation))
    return reservation


async def pay_reservation(
    db: AsyncSession,
    reservation_id: int,
    caller: Caller,
    clock: Clock,
    dispatcher: NotificationDispatcher,
) -> Reservation:
    """Mark a pending reservation as paid. Raises NotPayable or AlreadyPast."""
    reservation = await get_visible_reservation(db, reservation_id, caller)
    now = clock.now()

    violation = payment_violation(reservation, now)
    if violation:
        raise violation

    changed = await store.transition(
        db, reservation.id, (ReservationStatus.PENDING,), ReservationStatus.PAID, paid_at=now
    )
    if not changed:
        await _reload(db, reservation)
        raise payment_violation(reservation, now) or _lost_update(reservation)

    await _commit_transition(db, reservation, status=ReservationStatus.PAID, paid_at=now)
    logger.info("Reservation %s paid", reservation.id)
    await dispatcher.notify(ReservationEvent.from_reservation(EventKind.PAYMENT_CONFIRMED, reservation))
    return reservation


async def _commit_transition(db: AsyncSession, reservation: Reservation, **written) -> None:
    """Commit a conditional update and mirror its values onto the loaded instance.

    Nothing is read back after the commit: once the transition is durable a
    store failure must not turn into a retry of the whole operation.
    """
    with store.store_errors("commit"):
        await db.commit()
    for field, value in written.items():
        set_committed_value(reservation, field, value)


async def _reload(db: AsyncSession, reservation: Reservation) -> None:
    with store.store_errors("fetch"):
        await db.refresh(reservation)


def _lost_update(reservation: Reservation) -> InternalError:
    # The conditional update missed but the fresh row still passes the rule
    logger.error("Reservation %s: conditional update matched no row in state %s", reservation.id, reservation.status)
    return InternalError(f"Reservation #{reservation.id} changed state unexpectedly.")
