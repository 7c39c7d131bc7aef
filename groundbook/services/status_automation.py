"""
Automated status transitions for bookings
Handles confirmed → completed once a booking has been played
Handles pending → expired for requests nobody confirmed before their end time
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..cache import invalidate_occupancy
from ..domain.bookings.lifecycle import ActorRole, BookingStatus, check_transition
from ..domain.bookings.repository import BookingRepository
from ..domain.bookings.service import notify
from ..domain.errors import StaleStateError
from ..shared.actor import SYSTEM_ACTOR
from .notification_service import BookingEventType, NotificationEmitter, get_emitter

logger = logging.getLogger(__name__)

_EVENTS = {
    BookingStatus.COMPLETED: BookingEventType.COMPLETED,
    BookingStatus.EXPIRED: BookingEventType.EXPIRED,
}


def _sweep(
    db: Session,
    now: datetime,
    source_statuses: list[str],
    target: BookingStatus,
    emitter: NotificationEmitter,
) -> dict:
    """
    Move every elapsed booking in ``source_statuses`` to ``target``.

    Each booking is its own compare-and-set and commit, so one failure is
    logged and skipped without undoing the rest. Running it twice changes
    nothing the second time.
    """
    result = {"updated": 0, "skipped": 0, "failed": 0}

    candidates = [
        (b.id, b.status) for b in BookingRepository.get_elapsed_bookings(db, source_statuses, now)
    ]
    for booking_id, current in candidates:
        try:
            check_transition(current, target, ActorRole.SYSTEM)
            BookingRepository.update_booking_status(
                db, booking_id, target, SYSTEM_ACTOR.id, current, now
            )
            db.commit()
        except StaleStateError:
            db.rollback()
            result["skipped"] += 1
            logger.debug(f"ℹ️ Booking {booking_id} changed during sweep, skipped")
            continue
        except Exception as e:
            db.rollback()
            result["failed"] += 1
            logger.error(f"❌ Sweep could not move booking {booking_id} to {target.value}: {e}")
            continue

        result["updated"] += 1
        logger.info(f"✅ Booking {booking_id} transitioned: {current} → {target.value}")
        booking = BookingRepository.get_booking(db, booking_id, refresh=True)
        if booking is None:
            continue
        invalidate_occupancy(booking.ground_id, booking.booking_date)
        notify(db, emitter, _EVENTS[target], booking, SYSTEM_ACTOR.id, now)

    return result


def auto_complete_sweep(
    db: Session, now: datetime, emitter: Optional[NotificationEmitter] = None
) -> dict:
    """Confirmed (or legacy 'active') bookings whose end has passed become completed"""
    return _sweep(
        db,
        now,
        [BookingStatus.CONFIRMED.value, BookingStatus.ACTIVE.value],
        BookingStatus.COMPLETED,
        emitter or get_emitter(),
    )


def expire_sweep(db: Session, now: datetime, emitter: Optional[NotificationEmitter] = None) -> dict:
    """Pending requests whose end has passed without a decision become expired"""
    return _sweep(
        db,
        now,
        [BookingStatus.PENDING.value],
        BookingStatus.EXPIRED,
        emitter or get_emitter(),
    )


def run_booking_sweep(
    db: Session, now: datetime, emitter: Optional[NotificationEmitter] = None
) -> dict:
    """
    Run both sweeps; should be run as a scheduled job every few minutes

    Returns:
        dict: Summary of status changes made
    """
    completed = auto_complete_sweep(db, now, emitter)
    expired = expire_sweep(db, now, emitter)

    summary = {
        "completed": completed["updated"],
        "expired": expired["updated"],
        "skipped": completed["skipped"] + expired["skipped"],
        "failed": completed["failed"] + expired["failed"],
        "total_updated": completed["updated"] + expired["updated"],
    }
    if summary["total_updated"] or summary["failed"]:
        logger.info(f"📊 Booking sweep summary: {summary}")
    else:
        logger.debug("ℹ️ No booking status updates needed")
    return summary
