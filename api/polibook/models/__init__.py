"""All models imported here so Base.metadata knows every table."""

from polibook.models.base import Base
from polibook.models.reservation import ACTIVE_STATUSES, Reservation, ReservationStatus
from polibook.models.venue import Court, CourtType, Venue

__all__ = [
    "Base",
    "Venue",
    "Court",
    "CourtType",
    "Reservation",
    "ReservationStatus",
    "ACTIVE_STATUSES",
]
