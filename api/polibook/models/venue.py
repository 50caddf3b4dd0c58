"""Venue and court models.

Venue = a sports centre ("polideportivo") with an address.
Court = an individual bookable resource ("pista") at a venue.
"""

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from polibook.models.base import Base, TimestampMixin


class CourtType(enum.StrEnum):
    SOCCER = "soccer"
    BASKETBALL = "basketball"
    TENNIS = "tennis"
    PADEL = "padel"
    VOLLEYBALL = "volleyball"
    FUTSAL = "futsal"


class Venue(TimestampMixin, Base):
    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))

    def __repr__(self) -> str:
        return f"<Venue {self.name}>"


class Court(TimestampMixin, Base):
    """A bookable court. Priced per whole hour."""

    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    court_type: Mapped[CourtType] = mapped_column(
        Enum(CourtType, name="court_type", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    hourly_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    under_maintenance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("ix_courts_venue_name", "venue_id", "name", unique=True),)

    def __repr__(self) -> str:
        return f"<Court {self.name} @ venue {self.venue_id}>"
