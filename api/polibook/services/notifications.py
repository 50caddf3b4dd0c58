"""Reservation lifecycle notifications.

The lifecycle emits a ReservationEvent after each committed transition.
Delivery is pluggable: LoggingDispatcher (default) only records the event,
SmtpDispatcher sends a confirmation email via aiosmtplib.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from polibook.core.config import settings

logger = logging.getLogger(__name__)


class EventKind(enum.StrEnum):
    RESERVATION_CREATED = "reservation_created"
    PAYMENT_CONFIRMED = "payment_confirmed"
    RESERVATION_CANCELLED = "reservation_cancelled"


@dataclass(frozen=True)
class ReservationEvent:
    kind: EventKind
    reservation_id: int
    user_id: str
    user_name: str
    user_email: str | None
    court_id: int
    reservation_date: date
    start_time: time
    end_time: time
    price: Decimal
    status: str

    @classmethod
    def from_reservation(cls, kind: EventKind, reservation) -> "ReservationEvent":
        return cls(
            kind=kind,
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            user_name=reservation.user_name,
            user_email=reservation.user_email,
            court_id=reservation.court_id,
            reservation_date=reservation.reservation_date,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            price=reservation.price,
            status=reservation.status.value,
        )


class NotificationDispatcher(Protocol):
    async def notify(self, event: ReservationEvent) -> None: ...


class LoggingDispatcher:
    async def notify(self, event: ReservationEvent) -> None:
        logger.info(
            "%s: reservation #%s for %s on %s %s-%s",
            event.kind,
            event.reservation_id,
            event.user_id,
            event.reservation_date,
            event.start_time.strftime("%H:%M"),
            event.end_time.strftime("%H:%M"),
        )


_SUBJECTS = {
    EventKind.RESERVATION_CREATED: "Reservation received",
    EventKind.PAYMENT_CONFIRMED: "Payment confirmed",
    EventKind.RESERVATION_CANCELLED: "Reservation cancelled",
}


def render_email(event: ReservationEvent) -> tuple[str, str]:
    """(subject, plain-text body) for an event."""
    subject = f"{_SUBJECTS[event.kind]} #{event.reservation_id}"
    body = (
        f"Hi {event.user_name},\n\n"
        f"{_SUBJECTS[event.kind]} for court #{event.court_id} on {event.reservation_date:%d/%m/%Y} "
        f"from {event.start_time:%H:%M} to {event.end_time:%H:%M}.\n"
        f"Total: {event.price} EUR\n"
        f"Status: {event.status}\n\n"
        f"Polibook"
    )
    return subject, body


class SmtpDispatcher:
    """Send one plain-text email per event.

    Runs after the transition is committed, so a delivery failure is logged
    and does not undo the reservation change.
    """

    def __init__(self, hostname: str | None = None, port: int | None = None, sender: str | None = None):
        self.hostname = hostname or settings.smtp_host
        self.port = port or settings.smtp_port
        self.sender = sender or settings.smtp_from

    async def notify(self, event: ReservationEvent) -> None:
        if not event.user_email:
            logger.debug("No email for user %s, skipping %s", event.user_id, event.kind)
            return

        subject, body = render_email(event)
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = event.user_email
        message["Subject"] = subject
        message.set_content(body)

        try:
            await aiosmtplib.send(message, hostname=self.hostname, port=self.port)
        except aiosmtplib.SMTPException:
            logger.exception("Failed to send %s email for reservation #%s", event.kind, event.reservation_id)
            return
        logger.info("%s email sent to %s", event.kind, event.user_email)


def build_dispatcher(backend: str | None = None) -> NotificationDispatcher:
    backend = backend or settings.notification_backend
    if backend == "smtp":
        return SmtpDispatcher()
    if backend == "log":
        return LoggingDispatcher()
    raise ValueError(f"Unknown notification backend: {backend}")
