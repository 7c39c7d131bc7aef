"""
Availability read model

Given the slot-holding bookings of one ground on one date, annotate every slot
of the ground's grid for a particular requester. Pure: same inputs, same
output, and it never touches storage.

Precedence per slot:
    past             slot has ended (today) or the date is before today
    booked_by_other  any overlapping booking belongs to someone else
    own_*            the overlapping booking is the requester's
    available        nothing overlaps
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from ..bookings.lifecycle import CONFLICT_STATUSES, BookingStatus, normalize_status
from .conflicts import intervals_overlap
from .slots import generate_slots, is_past, slot_units


class SlotState(str, Enum):
    AVAILABLE = "available"
    PAST = "past"
    BOOKED_BY_OTHER = "booked_by_other"
    OWN_PENDING = "own_pending"
    OWN_CONFIRMED = "own_confirmed"
    OWN_COMPLETED = "own_completed"


_OWN_STATES = {
    BookingStatus.PENDING: SlotState.OWN_PENDING,
    BookingStatus.CONFIRMED: SlotState.OWN_CONFIRMED,
    BookingStatus.COMPLETED: SlotState.OWN_COMPLETED,
}


@dataclass(frozen=True)
class Occupancy:
    """The part of a booking the slot grid needs; also the cached snapshot format"""

    booking_id: str
    user_id: str
    status: str
    start_time: time
    end_time: time

    @classmethod
    def from_booking(cls, booking) -> "Occupancy":
        return cls(
            booking_id=booking.id,
            user_id=booking.user_id,
            status=booking.status,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )

    def to_dict(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "status": self.status,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Occupancy":
        return cls(
            booking_id=data["booking_id"],
            user_id=data["user_id"],
            status=data["status"],
            start_time=time.fromisoformat(data["start_time"]),
            end_time=time.fromisoformat(data["end_time"]),
        )


@dataclass(frozen=True)
class SlotAvailability:
    start: time
    end: time
    price: Decimal
    state: SlotState
    occupant_id: Optional[str] = None
    booking_id: Optional[str] = None  # only set on the requester's own slots

    @property
    def is_available(self) -> bool:
        return self.state == SlotState.AVAILABLE


def _slot_state(
    slot_start: time,
    slot_end: time,
    booking_date: date,
    now: datetime,
    requester_id: Optional[str],
    occupancies: list[Occupancy],
) -> tuple[SlotState, Optional[Occupancy]]:
    if is_past(booking_date, slot_end, now):
        return SlotState.PAST, None

    overlapping = [
        o
        for o in occupancies
        if BookingStatus(o.status) in CONFLICT_STATUSES
        and intervals_overlap(o.start_time, o.end_time, slot_start, slot_end)
    ]
    if not overlapping:
        return SlotState.AVAILABLE, None

    for occupancy in overlapping:
        if occupancy.user_id != requester_id:
            return SlotState.BOOKED_BY_OTHER, occupancy

    own = overlapping[0]
    return _OWN_STATES[normalize_status(own.status)], own


def calculate_availability(
    category,
    booking_date: date,
    now: datetime,
    requester_id: Optional[str],
    occupancies: Iterable[Occupancy],
) -> list[SlotAvailability]:
    """Annotated slot grid for one ground and date as seen by ``requester_id``"""
    occupancies = list(occupancies)
    grid = []
    for slot in generate_slots(category):
        state, occupant = _slot_state(
            slot.start, slot.end, booking_date, now, requester_id, occupancies
        )
        grid.append(
            SlotAvailability(
                start=slot.start,
                end=slot.end,
                price=slot.price,
                state=state,
                occupant_id=occupant.user_id if occupant else None,
                booking_id=occupant.booking_id
                if occupant and state != SlotState.BOOKED_BY_OTHER
                else None,
            )
        )
    return grid


def interval_is_available(grid: list[SlotAvailability], start: time, end: time) -> bool:
    """True when every grid slot inside [start, end) is available"""
    covered = [s for s in grid if s.start >= start and s.end <= end]
    if not covered or len(covered) != slot_units(start, end):
        return False
    return all(s.is_available for s in covered)
