"""Pricing service for reservation totals.

Price = court hourly rate x whole hours booked, plus a flat surcharge per
add-on (independent of duration). Pure and deterministic, so it is safe to
call for estimates before anything is committed.
"""

import enum
from collections.abc import Iterable
from datetime import time
from decimal import Decimal

from polibook.core.config import settings
from polibook.core.errors import InvalidWindow


class AddOn(enum.StrEnum):
    CHILD_CARE = "child_care"


ADD_ON_SURCHARGES: dict[AddOn, Decimal] = {
    AddOn.CHILD_CARE: settings.child_care_surcharge,
}

_CENTS = Decimal("0.01")


def duration_hours(start_time: time, end_time: time) -> int:
    """Whole hours between two on-the-hour times of the same day."""
    return end_time.hour - start_time.hour


def estimate(court, start_time: time, end_time: time, add_ons: Iterable[AddOn] = ()) -> Decimal:
    """Total price for booking `court` from start_time to end_time.

    Raises InvalidWindow when the window is empty or reversed.
    """
    hours = duration_hours(start_time, end_time)
    if hours <= 0:
        raise InvalidWindow("End time must be after start time.")

    total = Decimal(str(court.hourly_price)) * hours
    for add_on in set(add_ons):
        total += ADD_ON_SURCHARGES[add_on]

    return total.quantize(_CENTS)


def add_ons_from_flags(child_care: bool = False) -> set[AddOn]:
    """Translate request/row boolean flags into the add-on set."""
    selected = set()
    if child_care:
        selected.add(AddOn.CHILD_CARE)
    return selected
