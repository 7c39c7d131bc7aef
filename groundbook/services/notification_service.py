"""
Booking Notification Service
Fans booking state changes out to every registered sink (logs, email)
Emission is best-effort: a failing sink is logged and never reaches the caller
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .. import email_service
from ..config import RESEND_API_KEY

logger = logging.getLogger(__name__)


class BookingEventType(str, Enum):
    CREATED = "BookingCreated"
    CONFIRMED = "BookingConfirmed"
    REJECTED = "BookingRejected"
    CANCELLED = "BookingCancelled"
    RESCHEDULED = "BookingRescheduled"
    COMPLETED = "BookingCompleted"
    EXPIRED = "BookingExpired"


def booking_snapshot(booking, ground_name: Optional[str] = None) -> dict:
    """Plain-data copy of a booking, safe to hand to sinks after the session closes"""
    if ground_name is None and getattr(booking, "ground", None) is not None:
        ground_name = booking.ground.name
    return {
        "id": booking.id,
        "ground_id": booking.ground_id,
        "ground_name": ground_name,
        "user_id": booking.user_id,
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": booking.status,
        "payment_status": booking.payment_status,
        "total_amount": str(booking.total_amount),
        "booked_by_admin": bool(booking.booked_by_admin),
    }


@dataclass
class BookingEvent:
    event_type: BookingEventType
    booking_id: str
    occurred_at: datetime
    snapshot: dict
    actor_id: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_name: Optional[str] = None
    previous: Optional[dict] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def dedupe_key(self) -> tuple:
        return (self.booking_id, self.event_type.value, self.occurred_at.isoformat())


Sink = Callable[[BookingEvent], None]


class NotificationEmitter:
    """Registry of sinks; ``emit`` calls each one and isolates their failures"""

    def __init__(self, sinks: Optional[list] = None):
        self._sinks: list = list(sinks or [])

    def register(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def emit(self, event: BookingEvent) -> dict:
        result = {"event_id": event.event_id, "delivered": 0, "errors": []}
        for sink in self._sinks:
            name = getattr(sink, "name", type(sink).__name__)
            try:
                sink(event)
                result["delivered"] += 1
            except Exception as e:
                result["errors"].append(f"{name}: {e}")
                logger.error(
                    f"❌ Notification sink {name} failed for {event.event_type.value} "
                    f"booking {event.booking_id}: {e}"
                )
        return result


class LoggingSink:
    name = "log"

    def __call__(self, event: BookingEvent) -> None:
        logger.info(
            f"🔔 {event.event_type.value} booking={event.booking_id} "
            f"status={event.snapshot.get('status')} actor={event.actor_id}"
        )


class EmailSink:
    """
    Sends the requester (and, for new requests, the venue inbox) a booking email.

    Delivery is at-least-once upstream, so already-delivered dedupe keys are dropped.
    """

    name = "email"
    max_remembered = 1000

    def __init__(self):
        self._delivered: OrderedDict = OrderedDict()
        self._lock = threading.Lock()

    def _seen(self, key: tuple) -> bool:
        with self._lock:
            if key in self._delivered:
                return True
            self._delivered[key] = True
            while len(self._delivered) > self.max_remembered:
                self._delivered.popitem(last=False)
            return False

    def __call__(self, event: BookingEvent) -> None:
        if not RESEND_API_KEY:
            logger.debug(f"ℹ️ Email skipped for {event.event_type.value}: RESEND_API_KEY not set")
            return
        if self._seen(event.dedupe_key):
            logger.debug(f"ℹ️ Duplicate {event.event_type.value} for {event.booking_id} dropped")
            return

        name = event.recipient_name or "there"
        snapshot = event.snapshot

        if event.event_type == BookingEventType.CREATED and not snapshot.get("booked_by_admin"):
            email_service.send_admin_new_booking_email(name, snapshot)

        if not event.recipient_email:
            logger.debug(f"⚠️ No email address for booking {event.booking_id}")
            return

        to = event.recipient_email
        if event.event_type == BookingEventType.CREATED:
            if snapshot.get("booked_by_admin"):
                email_service.send_booking_confirmed_email(to, name, snapshot)
            else:
                email_service.send_booking_requested_email(to, name, snapshot)
        elif event.event_type == BookingEventType.CONFIRMED:
            email_service.send_booking_confirmed_email(to, name, snapshot)
        elif event.event_type == BookingEventType.REJECTED:
            email_service.send_booking_rejected_email(to, name, snapshot)
        elif event.event_type == BookingEventType.CANCELLED:
            email_service.send_booking_cancelled_email(to, name, snapshot)
        elif event.event_type == BookingEventType.RESCHEDULED and event.previous:
            email_service.send_booking_rescheduled_email(to, name, event.previous, snapshot)


emitter = NotificationEmitter([LoggingSink(), EmailSink()])


def get_emitter() -> NotificationEmitter:
    """FastAPI dependency for the process-wide emitter"""
    return emitter
