"""Reservation routes: create, list, detail, cancel, pay, price estimate."""

from datetime import time
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.auth import Caller
from polibook.core.clock import Clock
from polibook.core.database import get_db
from polibook.core.dependencies import (
    ensure_manages_venue,
    get_clock,
    get_current_caller,
    get_dispatcher,
    require_admin,
)
from polibook.core.errors import Forbidden
from polibook.schemas import EstimateOut, ReservationCreate, ReservationListOut, ReservationOut
from polibook.services import catalog, store
from polibook.services.booking_rules import effective_status, hours_violation, split_active_history
from polibook.services.lifecycle import (
    cancel_reservation,
    create_reservation,
    get_visible_reservation,
    pay_reservation,
)
from polibook.services.notifications import NotificationDispatcher
from polibook.services.pricing import ADD_ON_SURCHARGES, add_ons_from_flags, duration_hours, estimate
from polibook.services.store import retry_on_transient

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _out(reservation, now) -> ReservationOut:
    out = ReservationOut.model_validate(reservation)
    out.effective_status = effective_status(reservation, now)
    return out


def _split(reservations, now) -> ReservationListOut:
    active, history = split_active_history(reservations, now)
    return ReservationListOut(
        active=[_out(r, now) for r in active],
        history=[_out(r, now) for r in history],
    )


@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create(
    body: ReservationCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    reservation = await retry_on_transient(
        db,
        lambda: create_reservation(
            db,
            caller,
            court_id=body.court_id,
            reservation_date=body.reservation_date,
            start_time=body.start_time,
            end_time=body.end_time,
            add_ons=add_ons_from_flags(child_care=body.child_care),
            clock=clock,
            dispatcher=dispatcher,
        ),
    )
    return _out(reservation, clock.now())


@router.get("", response_model=ReservationListOut)
async def list_reservations(
    user_id: str | None = Query(None, description="Another user's id (super admin only)"),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """The caller's reservations, split into active and history."""
    target = caller.user_id
    if user_id is not None and user_id != caller.user_id:
        if not caller.is_super_admin:
            raise Forbidden("You can only list your own reservations.")
        target = user_id

    reservations = await retry_on_transient(db, lambda: store.list_for_user(db, target))
    return _split(reservations, clock.now())


@router.get("/estimate", response_model=EstimateOut)
async def price_estimate(
    court_id: int,
    start_time: time,
    end_time: time,
    child_care: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """Price a window without booking it. Public.

    Windows a booking would reject for their hours are rejected here too.
    """
    violation = hours_violation(start_time, end_time)
    if violation:
        raise violation

    court = await catalog.get_bookable_court(db, court_id)
    add_ons = add_ons_from_flags(child_care=child_care)
    price = estimate(court, start_time, end_time, add_ons)

    return EstimateOut(
        court_id=court.id,
        hours=duration_hours(start_time, end_time),
        hourly_price=court.hourly_price,
        surcharges=sum((ADD_ON_SURCHARGES[a] for a in add_ons), Decimal("0.00")),
        price=price,
    )


@router.get("/venue/{venue_id}", response_model=ReservationListOut)
async def list_venue_reservations(
    venue_id: int,
    caller: Caller = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """All reservations at a venue. Venue admin of that venue or super admin."""
    ensure_manages_venue(caller, venue_id)
    await catalog.get_venue(db, venue_id)

    reservations = await retry_on_transient(db, lambda: store.list_for_venue(db, venue_id))
    return _split(reservations, clock.now())


@router.get("/{reservation_id}", response_model=ReservationOut)
async def get_reservation(
    reservation_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    reservation = await retry_on_transient(db, lambda: get_visible_reservation(db, reservation_id, caller))
    return _out(reservation, clock.now())


@router.post("/{reservation_id}/cancel", response_model=ReservationOut)
async def cancel(
    reservation_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    reservation = await retry_on_transient(
        db, lambda: cancel_reservation(db, reservation_id, caller, clock=clock, dispatcher=dispatcher)
    )
    return _out(reservation, clock.now())


@router.put("/{reservation_id}/pay", response_model=ReservationOut)
async def pay(
    reservation_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    reservation = await retry_on_transient(
        db, lambda: pay_reservation(db, reservation_id, caller, clock=clock, dispatcher=dispatcher)
    )
    return _out(reservation, clock.now())
