"""Pydantic schemas for API serialisation."""

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from polibook.models.reservation import ReservationStatus
from polibook.models.venue import CourtType

# --- Venue ---


class VenueIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1)
    phone: str | None = None


class VenueUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = Field(default=None, min_length=1)
    phone: str | None = None


class VenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    phone: str | None


class VenueStatsOut(BaseModel):
    venue_id: int
    total_courts: int
    open_courts: int
    total_reservations: int
    by_status: dict[str, int]
    paid_revenue: Decimal


# --- Court ---


class CourtIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    court_type: CourtType
    hourly_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    description: str | None = None
    # Required for super admins; venue admins always create in their own venue
    venue_id: int | None = None


class CourtUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    court_type: CourtType | None = None
    hourly_price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    description: str | None = None


class MaintenanceIn(BaseModel):
    under_maintenance: bool


class PriceIn(BaseModel):
    hourly_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class CourtOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_id: int
    name: str
    court_type: CourtType
    hourly_price: Decimal
    under_maintenance: bool
    description: str | None


# --- Availability ---


class SlotOut(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_available: bool


class AvailabilityOut(BaseModel):
    court_id: int
    court_name: str
    date: date
    slots: list[SlotOut]


# --- Reservation ---


class ReservationCreate(BaseModel):
    court_id: int
    reservation_date: date
    start_time: time
    end_time: time
    child_care: bool = False


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    court_id: int
    venue_id: int
    user_id: str
    user_name: str
    reservation_date: date
    start_time: time
    end_time: time
    child_care: bool
    price: Decimal
    status: ReservationStatus
    effective_status: str | None = None
    created_at: datetime
    paid_at: datetime | None
    cancelled_at: datetime | None


class ReservationListOut(BaseModel):
    active: list[ReservationOut]
    history: list[ReservationOut]


class EstimateOut(BaseModel):
    court_id: int
    hours: int
    hourly_price: Decimal
    surcharges: Decimal
    price: Decimal
