"""
Conflict detection

A proposed [start, end) conflicts with an existing booking B on the same
ground and date when ``B.start < end and B.end > start`` and B's status is
in CONFLICT_STATUSES (pending, confirmed, active, completed).

``has_conflict`` is the only check allowed to gate a write, and it must run
inside ``ground_day_guard`` together with the write it protects.
"""

from datetime import date, time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...models import Booking
from ..bookings.lifecycle import CONFLICT_STATUSES

_CONFLICT_VALUES = sorted(s.value for s in CONFLICT_STATUSES)


def intervals_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open interval overlap; touching intervals do not overlap"""
    return a_start < b_end and a_end > b_start


def conflicting_bookings_query(
    ground_id: str,
    booking_date: date,
    start: time,
    end: time,
    exclude_booking_id: Optional[str] = None,
):
    stmt = select(Booking).where(
        Booking.ground_id == ground_id,
        Booking.booking_date == booking_date,
        Booking.status.in_(_CONFLICT_VALUES),
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    return stmt


def has_conflict(
    db: Session,
    ground_id: str,
    booking_date: date,
    start: time,
    end: time,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    """Authoritative check against the bookings table"""
    stmt = conflicting_bookings_query(ground_id, booking_date, start, end, exclude_booking_id)
    return db.execute(stmt.limit(1)).first() is not None
