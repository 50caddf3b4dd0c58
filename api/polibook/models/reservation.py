"""Reservation model.

A reservation books one court for one user over a whole-hour window on a
single calendar day. The owner is denormalised from the caller's token
(id, display name, national id); there is no users table.
"""

import enum
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Numeric, String, Time, text
from sqlalchemy.orm import Mapped, mapped_column

from polibook.models.base import Base, TimestampMixin


class ReservationStatus(enum.StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


# States that hold the slot
ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.PAID)

_ACTIVE_SQL = text("status IN ('pending', 'confirmed', 'paid')")


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False)

    # Who
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_national_id: Mapped[str | None] = mapped_column(String(20))
    user_email: Mapped[str | None] = mapped_column(String(254))

    # When
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    # Extras and price
    child_care: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Status
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", values_callable=lambda e: [x.value for x in e]),
        default=ReservationStatus.PENDING,
        nullable=False,
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        # Backstop against double-booking the same start hour. Partial overlaps
        # with different start hours are caught by the locked conflict check.
        Index(
            "ix_reservations_no_double",
            "court_id",
            "reservation_date",
            "start_time",
            unique=True,
            postgresql_where=_ACTIVE_SQL,
            sqlite_where=_ACTIVE_SQL,
        ),
        # Conflict checks and availability grids
        Index("ix_reservations_court_date", "court_id", "reservation_date"),
        # My reservations
        Index("ix_reservations_user", "user_id", "reservation_date"),
        Index("ix_reservations_venue", "venue_id", "reservation_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.reservation_date} {self.start_time}-{self.end_time} "
            f"court={self.court_id} {self.status}>"
        )
