"""
Slot model - how a day is cut into bookable units for each ground category

Day grounds open 07:00-18:00, night grounds 18:00-23:00. Every slot is
SLOT_MINUTES long and priced at half the category's hourly rate.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ...config import (
    DAY_PRICE_PER_HOUR,
    DAY_WINDOW_END_HOUR,
    DAY_WINDOW_START_HOUR,
    NIGHT_PRICE_PER_HOUR,
    NIGHT_WINDOW_END_HOUR,
    NIGHT_WINDOW_START_HOUR,
    SLOT_MINUTES,
)
from ..errors import InvalidSlotSelection, NonContiguousSelection, SlotInPast

SLOT_DELTA = timedelta(minutes=SLOT_MINUTES)
_CENTS = Decimal("0.01")


class GroundCategory(str, Enum):
    DAY = "day"
    NIGHT = "night"


@dataclass(frozen=True)
class SlotWindow:
    start_hour: int
    end_hour: int
    unit_price: Decimal  # price of one slot unit


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    price: Decimal


def slot_window(category) -> SlotWindow:
    """Opening hours and unit price for a ground category"""
    category = GroundCategory(category)
    if category == GroundCategory.DAY:
        return SlotWindow(
            DAY_WINDOW_START_HOUR,
            DAY_WINDOW_END_HOUR,
            _unit_price(DAY_PRICE_PER_HOUR),
        )
    return SlotWindow(
        NIGHT_WINDOW_START_HOUR,
        NIGHT_WINDOW_END_HOUR,
        _unit_price(NIGHT_PRICE_PER_HOUR),
    )


def _unit_price(price_per_hour: Decimal) -> Decimal:
    return (Decimal(price_per_hour) * SLOT_MINUTES / 60).quantize(_CENTS)


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(total: int) -> time:
    return time(hour=total // 60, minute=total % 60)


def generate_slots(category) -> list[Slot]:
    """Ordered slot grid for one day of a ground in ``category``"""
    window = slot_window(category)
    slots = []
    cursor = window.start_hour * 60
    while cursor + SLOT_MINUTES <= window.end_hour * 60:
        slots.append(
            Slot(
                start=_from_minutes(cursor),
                end=_from_minutes(cursor + SLOT_MINUTES),
                price=window.unit_price,
            )
        )
        cursor += SLOT_MINUTES
    return slots


def slot_units(start: time, end: time) -> int:
    """Number of slot units in [start, end)"""
    return (_minutes(end) - _minutes(start)) // SLOT_MINUTES


def duration_hours(start: time, end: time) -> float:
    return (_minutes(end) - _minutes(start)) / 60


def price_for_interval(category, start: time, end: time) -> Decimal:
    return (slot_window(category).unit_price * slot_units(start, end)).quantize(_CENTS)


def merge_contiguous(intervals: Iterable[tuple[time, time]]) -> tuple[time, time]:
    """
    Merge a caller's slot selection into one [min(start), max(end)) interval.

    The selection may arrive in any order but, once sorted, each slot must
    start exactly where the previous one ended.

    Raises:
        NonContiguousSelection: empty selection, duplicates, gaps or overlaps
    """
    ordered = sorted(intervals, key=lambda pair: (pair[0], pair[1]))
    if not ordered:
        raise NonContiguousSelection("Select at least one slot")

    for (_, previous_end), (next_start, _) in zip(ordered, ordered[1:]):
        if next_start != previous_end:
            raise NonContiguousSelection(
                f"Slot starting {next_start.strftime('%H:%M')} does not follow "
                f"slot ending {previous_end.strftime('%H:%M')}"
            )

    return ordered[0][0], ordered[-1][1]


def validate_interval(category, start: time, end: time) -> None:
    """
    Check that [start, end) is non-empty, aligned to the slot unit and inside
    the category window.

    Raises:
        InvalidSlotSelection
    """
    if start >= end:
        raise InvalidSlotSelection("Start time must be before end time")

    for value in (start, end):
        if value.second or value.microsecond or _minutes(value) % SLOT_MINUTES:
            raise InvalidSlotSelection(
                f"Times must fall on {SLOT_MINUTES}-minute slot boundaries"
            )

    window = slot_window(category)
    if _minutes(start) < window.start_hour * 60 or _minutes(end) > window.end_hour * 60:
        raise InvalidSlotSelection(
            f"{GroundCategory(category).value.title()} grounds can be booked between "
            f"{window.start_hour:02d}:00 and {window.end_hour:02d}:00"
        )


def is_past(booking_date: date, end: time, now: datetime) -> bool:
    """
    A slot is past once its end has been reached.

    Dates before ``now``'s date count as entirely past, whatever the slot,
    so history is never offered or accepted for booking.
    """
    today = now.date()
    if booking_date < today:
        return True
    if booking_date > today:
        return False
    return end <= now.time()


def ensure_not_past(booking_date: date, start: time, now: datetime) -> None:
    """Reject an interval whose first slot has already ended"""
    first_slot_end = _from_minutes(_minutes(start) + SLOT_MINUTES)
    if is_past(booking_date, first_slot_end, now):
        raise SlotInPast("Selected slot has already passed")
