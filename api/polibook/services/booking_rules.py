"""Time-based reservation rules.

Pure functions only: no database, no async. Every place that needs to know
whether a reservation is past, cancellable, payable or "completed" asks this
module, so list views, detail views and the lifecycle can never disagree.
Each check returns the violated rule as an error instance, or None if the
rule passes.
"""

from datetime import date, datetime, time, timedelta

from polibook.core.clock import VENUE_TZ
from polibook.core.config import settings
from polibook.core.errors import AlreadyCancelled, AlreadyPast, InvalidWindow, NotPayable, TooCloseToStart
from polibook.models.reservation import ReservationStatus


def slot_start(reservation_date: date, start_time: time) -> datetime:
    """Aware datetime at which a slot begins, in the venue zone."""
    return datetime.combine(reservation_date, start_time, tzinfo=VENUE_TZ)


def starts_at(reservation) -> datetime:
    return slot_start(reservation.reservation_date, reservation.start_time)


def window_violation(
    reservation_date: date,
    start_time: time,
    end_time: time,
    now: datetime,
) -> InvalidWindow | None:
    """A bookable window is whole hours, inside opening hours, and not already started."""
    violation = hours_violation(start_time, end_time)
    if violation:
        return violation

    if slot_start(reservation_date, start_time) <= now:
        return InvalidWindow("Cannot book a slot in the past.")

    return None


def hours_violation(start_time: time, end_time: time) -> InvalidWindow | None:
    """Date-independent part of the window rule, shared by booking and price quotes."""
    if end_time <= start_time:
        return InvalidWindow("End time must be after start time.")

    for t in (start_time, end_time):
        if t.minute or t.second or t.microsecond:
            return InvalidWindow("Reservations start and end on the hour.")

    if not settings.opening_hour <= start_time.hour <= settings.last_start_hour:
        return InvalidWindow(
            f"Start time must be between {settings.opening_hour:02d}:00 and {settings.last_start_hour:02d}:00."
        )

    return None


def cancellation_violation(
    reservation,
    now: datetime,
    cutoff_minutes: int | None = None,
) -> AlreadyCancelled | AlreadyPast | TooCloseToStart | None:
    """Cancellable while active and at least cutoff_minutes before the start.

    The remaining-minutes count is computed from `now` on every call.
    """
    cutoff = settings.cancellation_cutoff_minutes if cutoff_minutes is None else cutoff_minutes

    if reservation.status == ReservationStatus.CANCELLED:
        return AlreadyCancelled("Reservation is already cancelled.")

    remaining = starts_at(reservation) - now
    if remaining < timedelta(0):
        return AlreadyPast("Reservation has already started.")

    if remaining < timedelta(minutes=cutoff):
        return TooCloseToStart(int(remaining.total_seconds() // 60), cutoff)

    return None


def payment_violation(reservation, now: datetime) -> NotPayable | AlreadyPast | None:
    """Only pending reservations that have not started can be paid."""
    if reservation.status != ReservationStatus.PENDING:
        return NotPayable(f"Reservation is {reservation.status.value}, only pending reservations can be paid.")

    if starts_at(reservation) < now:
        return AlreadyPast("Reservation has already started.")

    return None


def is_completed(reservation, now: datetime) -> bool:
    return reservation.status != ReservationStatus.CANCELLED and starts_at(reservation) < now


def effective_status(reservation, now: datetime) -> str:
    """Display status derived at read time. Never written back to the store.

    Cancelled -> "Cancelled"; started -> "Completed"; otherwise the stored
    status capitalised ("Pending", "Confirmed", "Paid").
    """
    if reservation.status == ReservationStatus.CANCELLED:
        return "Cancelled"
    if starts_at(reservation) < now:
        return "Completed"
    return reservation.status.value.capitalize()


def split_active_history(reservations, now: datetime) -> tuple[list, list]:
    """Partition into (active, history). History = cancelled or completed."""
    active, history = [], []
    for r in reservations:
        if effective_status(r, now) in ("Cancelled", "Completed"):
            history.append(r)
        else:
            active.append(r)
    return active, history
