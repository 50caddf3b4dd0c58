"""Pure rule tests: overlap, pricing, time-based rules, availability grid."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from conftest import NOW, TODAY, TOMORROW

from polibook.core.clock import VENUE_TZ, FixedClock
from polibook.core.errors import (
    AlreadyCancelled,
    AlreadyPast,
    InvalidWindow,
    NotPayable,
    TooCloseToStart,
)
from polibook.models.reservation import ReservationStatus
from polibook.services.booking_rules import (
    cancellation_violation,
    effective_status,
    is_completed,
    payment_violation,
    hours_violation,
    split_active_history,
    window_violation,
)
from polibook.services.conflicts import generate_slots, overlaps
from polibook.services.pricing import AddOn, add_ons_from_flags, duration_hours, estimate


def _reservation(day=TODAY, start=11, end=12, status=ReservationStatus.PENDING, id=1):
    return SimpleNamespace(
        id=id,
        reservation_date=day,
        start_time=time(start, 0),
        end_time=time(end, 0),
        status=status,
    )


def _court(price="10.00"):
    return SimpleNamespace(hourly_price=Decimal(price))


class TestOverlap:
    def test_same_window(self):
        assert overlaps(time(10), time(11), time(10), time(11))

    def test_partial(self):
        assert overlaps(time(10), time(12), time(11), time(13))

    def test_contained(self):
        assert overlaps(time(9), time(13), time(10), time(11))

    def test_touching_is_not_overlap(self):
        assert not overlaps(time(10), time(11), time(11), time(12))
        assert not overlaps(time(11), time(12), time(10), time(11))

    def test_disjoint(self):
        assert not overlaps(time(8), time(9), time(14), time(16))


class TestEstimate:
    def test_three_hours(self):
        assert estimate(_court("10.00"), time(10), time(13)) == Decimal("30.00")

    def test_child_care_is_flat(self):
        assert estimate(_court("10.00"), time(10), time(13), {AddOn.CHILD_CARE}) == Decimal("35.00")
        assert estimate(_court("10.00"), time(10), time(11), {AddOn.CHILD_CARE}) == Decimal("15.00")

    def test_fractional_rate(self):
        assert estimate(_court("12.50"), time(18), time(20)) == Decimal("25.00")

    def test_duplicate_add_on_counted_once(self):
        assert estimate(_court(), time(10), time(11), [AddOn.CHILD_CARE, AddOn.CHILD_CARE]) == Decimal("15.00")

    def test_reversed_window_rejected(self):
        with pytest.raises(InvalidWindow):
            estimate(_court(), time(13), time(10))

    def test_empty_window_rejected(self):
        with pytest.raises(InvalidWindow):
            estimate(_court(), time(10), time(10))

    def test_flags(self):
        assert add_ons_from_flags(child_care=True) == {AddOn.CHILD_CARE}
        assert add_ons_from_flags() == set()

    def test_duration(self):
        assert duration_hours(time(8), time(22)) == 14


class TestWindow:
    def test_valid(self):
        assert window_violation(TOMORROW, time(10), time(11), NOW) is None

    def test_end_before_start(self):
        assert isinstance(window_violation(TOMORROW, time(12), time(10), NOW), InvalidWindow)

    def test_not_on_the_hour(self):
        assert isinstance(window_violation(TOMORROW, time(10, 30), time(11, 30), NOW), InvalidWindow)

    def test_before_opening(self):
        assert isinstance(window_violation(TOMORROW, time(7), time(8), NOW), InvalidWindow)

    def test_last_start_hour(self):
        assert window_violation(TOMORROW, time(22), time(23), NOW) is None
        assert isinstance(window_violation(TOMORROW, time(23), time(23, 59), NOW), InvalidWindow)

    def test_past_slot(self):
        assert isinstance(window_violation(TODAY, time(10), time(11), NOW), InvalidWindow)
        assert isinstance(window_violation(TODAY - timedelta(days=1), time(18), time(19), NOW), InvalidWindow)

    def test_later_today(self):
        assert window_violation(TODAY, time(11), time(12), NOW) is None

    def test_hours_ignore_the_date(self):
        assert hours_violation(time(10), time(11)) is None
        assert isinstance(hours_violation(time(9, 30), time(10)), InvalidWindow)
        assert isinstance(hours_violation(time(6), time(8)), InvalidWindow)
        assert isinstance(hours_violation(time(11), time(10)), InvalidWindow)


class TestCancellation:
    def test_exactly_cutoff_is_allowed(self):
        r = _reservation(start=11, end=12)
        assert cancellation_violation(r, datetime(2026, 3, 16, 10, 0, tzinfo=VENUE_TZ)) is None

    def test_one_minute_inside_cutoff(self):
        r = _reservation(start=11, end=12)
        violation = cancellation_violation(r, datetime(2026, 3, 16, 10, 1, tzinfo=VENUE_TZ))
        assert isinstance(violation, TooCloseToStart)
        assert violation.minutes_remaining == 59
        assert "59 minutes remain" in violation.message

    def test_message_reports_minutes_at_evaluation_time(self):
        r = _reservation(start=11, end=12)
        clock = FixedClock(NOW)
        assert cancellation_violation(r, clock.now()).minutes_remaining == 30
        clock.advance(minutes=20)
        assert "10 minutes remain" in cancellation_violation(r, clock.now()).message

    def test_singular_minute(self):
        r = _reservation(start=11, end=12)
        violation = cancellation_violation(r, datetime(2026, 3, 16, 10, 59, tzinfo=VENUE_TZ))
        assert violation.message.endswith("1 minute remain.")

    def test_already_cancelled_checked_first(self):
        r = _reservation(day=TODAY - timedelta(days=1), status=ReservationStatus.CANCELLED)
        assert isinstance(cancellation_violation(r, NOW), AlreadyCancelled)

    def test_started(self):
        r = _reservation(start=10, end=11)
        assert isinstance(cancellation_violation(r, NOW), AlreadyPast)

    def test_paid_can_be_cancelled(self):
        r = _reservation(day=TOMORROW, status=ReservationStatus.PAID)
        assert cancellation_violation(r, NOW) is None

    def test_custom_cutoff(self):
        r = _reservation(start=12, end=13)
        violation = cancellation_violation(r, NOW, cutoff_minutes=120)
        assert isinstance(violation, TooCloseToStart)
        assert "2 hours" in violation.message


class TestPayment:
    def test_pending_future(self):
        assert payment_violation(_reservation(day=TOMORROW), NOW) is None

    @pytest.mark.parametrize("status", [ReservationStatus.PAID, ReservationStatus.CANCELLED, ReservationStatus.CONFIRMED])
    def test_not_pending(self, status):
        assert isinstance(payment_violation(_reservation(day=TOMORROW, status=status), NOW), NotPayable)

    def test_started(self):
        assert isinstance(payment_violation(_reservation(start=9, end=11), NOW), AlreadyPast)

    def test_starting_now_is_payable(self):
        r = _reservation(start=10, end=11)
        assert payment_violation(r, datetime(2026, 3, 16, 10, 0, tzinfo=VENUE_TZ)) is None


class TestEffectiveStatus:
    def test_future_keeps_stored_status(self):
        assert effective_status(_reservation(day=TOMORROW), NOW) == "Pending"
        assert effective_status(_reservation(day=TOMORROW, status=ReservationStatus.PAID), NOW) == "Paid"
        assert effective_status(_reservation(day=TOMORROW, status=ReservationStatus.CONFIRMED), NOW) == "Confirmed"

    def test_started_is_completed(self):
        r = _reservation(start=10, end=12, status=ReservationStatus.PAID)
        assert effective_status(r, NOW) == "Completed"
        assert is_completed(r, NOW)

    def test_cancelled_wins_over_completed(self):
        r = _reservation(day=TODAY - timedelta(days=3), status=ReservationStatus.CANCELLED)
        assert effective_status(r, NOW) == "Cancelled"
        assert not is_completed(r, NOW)

    def test_completion_follows_clock(self):
        r = _reservation(start=11, end=12)
        clock = FixedClock(NOW)
        assert effective_status(r, clock.now()) == "Pending"
        clock.advance(hours=1)
        assert effective_status(r, clock.now()) == "Completed"

    def test_split(self):
        upcoming = _reservation(day=TOMORROW, id=1)
        done = _reservation(start=9, end=10, status=ReservationStatus.PAID, id=2)
        cancelled = _reservation(day=TOMORROW, status=ReservationStatus.CANCELLED, id=3)

        active, history = split_active_history([upcoming, done, cancelled], NOW)

        assert [r.id for r in active] == [1]
        assert [r.id for r in history] == [2, 3]


class TestGenerateSlots:
    def test_slot_count(self):
        slots = generate_slots(TOMORROW, [], NOW)
        assert len(slots) == 15
        assert slots[0]["start_time"] == "08:00"
        assert slots[-1]["start_time"] == "22:00"
        assert slots[-1]["end_time"] == "23:00"

    def test_all_available_when_no_bookings(self):
        assert all(s["is_available"] for s in generate_slots(TOMORROW, [], NOW))

    def test_booking_blocks_its_hours(self):
        slots = generate_slots(TOMORROW, [(time(10), time(12))], NOW)
        blocked = [s["start_time"] for s in slots if not s["is_available"]]
        assert blocked == ["10:00", "11:00"]

    def test_past_slots_unavailable(self):
        slots = {s["start_time"]: s["is_available"] for s in generate_slots(TODAY, [], NOW)}
        assert slots["08:00"] is False
        assert slots["10:00"] is False
        assert slots["11:00"] is True

    def test_closed_court(self):
        assert not any(s["is_available"] for s in generate_slots(TOMORROW, [], NOW, closed=True))

    def test_other_day_unaffected(self):
        assert all(s["is_available"] for s in generate_slots(date(2026, 3, 20), [], NOW))
