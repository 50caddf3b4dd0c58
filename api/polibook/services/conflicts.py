"""Slot conflict detection and availability grids.

Two windows [a1, a2) and [b1, b2) overlap iff a1 < b2 and b1 < a2, so
back-to-back reservations (10:00-11:00, 11:00-12:00) never conflict.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from polibook.core.config import settings
from polibook.core.errors import SlotTaken
from polibook.services import store
from polibook.services.booking_rules import slot_start

SLOT_MINUTES = 60


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    return a_start < b_end and b_start < a_end


async def has_conflict(
    db: AsyncSession,
    court_id: int,
    reservation_date: date,
    start_time: time,
    end_time: time,
) -> bool:
    conflict = await store.first_overlapping(db, court_id, reservation_date, start_time, end_time)
    return conflict is not None


async def check_court_conflict(
    db: AsyncSession,
    court_id: int,
    reservation_date: date,
    start_time: time,
    end_time: time,
) -> SlotTaken | None:
    """No two active reservations can overlap on the same court."""
    conflict = await store.first_overlapping(db, court_id, reservation_date, start_time, end_time)
    if conflict:
        return SlotTaken(
            f"Court already booked from {conflict.start_time.strftime('%H:%M')} "
            f"to {conflict.end_time.strftime('%H:%M')}."
        )
    return None


def generate_slots(
    query_date: date,
    booked_intervals: list[tuple[time, time]],
    now: datetime,
    closed: bool = False,
) -> list[dict]:
    """All one-hour slots for a court on query_date.

    Returns dicts with start_time, end_time ("HH:MM") and is_available.
    Past slots, slots overlapping an active reservation, and every slot of a
    closed (maintenance) court are unavailable.
    """
    slots: list[dict] = []
    current = slot_start(query_date, time(settings.opening_hour, 0))
    last = slot_start(query_date, time(settings.last_start_hour, 0))

    while current <= last:
        start = current.time()
        end = (current + timedelta(minutes=SLOT_MINUTES)).time()
        if end == time(0, 0):
            # Last slot of the day cannot spill into tomorrow
            break

        is_past = current <= now
        taken = any(overlaps(start, end, b_start, b_end) for b_start, b_end in booked_intervals)

        slots.append(
            {
                "start_time": start.strftime("%H:%M"),
                "end_time": end.strftime("%H:%M"),
                "is_available": not closed and not is_past and not taken,
            }
        )
        current += timedelta(minutes=SLOT_MINUTES)

    return slots
