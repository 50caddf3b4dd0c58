"""Error taxonomy for the reservation engine.

Every business-rule outcome is a ReservationError subclass with a stable
rule code and the HTTP status the API answers with. Rule checks may either
return an instance (None = rule passes) or raise it directly.
"""

from fastapi import status


class ReservationError(Exception):
    """Base class for all expected reservation outcomes."""

    rule = "reservation_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidWindow(ReservationError):
    rule = "invalid_window"
    status_code = status.HTTP_400_BAD_REQUEST


class ResourceUnavailable(ReservationError):
    rule = "resource_unavailable"
    status_code = status.HTTP_404_NOT_FOUND


class SlotTaken(ReservationError):
    rule = "slot_taken"
    status_code = status.HTTP_409_CONFLICT


class AlreadyPast(ReservationError):
    rule = "already_past"
    status_code = status.HTTP_403_FORBIDDEN


class TooCloseToStart(ReservationError):
    rule = "too_close_to_start"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, minutes_remaining: int, cutoff_minutes: int = 60):
        self.minutes_remaining = minutes_remaining
        super().__init__(
            f"Only cancellable up to {_fmt_cutoff(cutoff_minutes)} before start; "
            f"{minutes_remaining} minute{'s' if minutes_remaining != 1 else ''} remain."
        )


class AlreadyCancelled(ReservationError):
    rule = "already_cancelled"
    status_code = status.HTTP_409_CONFLICT


class NotPayable(ReservationError):
    rule = "not_payable"
    status_code = status.HTTP_409_CONFLICT


class NotFound(ReservationError):
    rule = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class HasDependents(ReservationError):
    rule = "has_dependents"
    status_code = status.HTTP_409_CONFLICT


class DuplicateName(ReservationError):
    rule = "duplicate_name"
    status_code = status.HTTP_409_CONFLICT


class Forbidden(ReservationError):
    rule = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class TransientStoreError(ReservationError):
    """The store failed in a way that may succeed on a second attempt."""

    rule = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalError(ReservationError):
    """A stored row broke a local invariant. Never recoverable by retrying."""

    rule = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def _fmt_cutoff(minutes: int) -> str:
    """60 -> "1 hour", 120 -> "2 hours", 90 -> "90 minutes"."""
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minutes"
