from datetime import datetime
from decimal import Decimal

import pytest

from groundbook.domain.errors import InvalidSlotSelection, NonContiguousSelection, SlotInPast
from groundbook.domain.scheduling.slots import (
    GroundCategory,
    duration_hours,
    ensure_not_past,
    generate_slots,
    is_past,
    merge_contiguous,
    price_for_interval,
    slot_window,
    validate_interval,
)

from .conftest import NOW, TODAY, TOMORROW, slots, t


def test_day_window_and_unit_price():
    window = slot_window(GroundCategory.DAY)
    assert (window.start_hour, window.end_hour) == (7, 18)
    assert window.unit_price == Decimal("300.00")


def test_night_window_and_unit_price():
    window = slot_window("night")
    assert (window.start_hour, window.end_hour) == (18, 23)
    assert window.unit_price == Decimal("400.00")


def test_generate_slots_covers_window_in_half_hours():
    day = generate_slots("day")
    assert len(day) == 22
    assert day[0].start == t("07:00") and day[0].end == t("07:30")
    assert day[-1].start == t("17:30") and day[-1].end == t("18:00")

    night = generate_slots("night")
    assert len(night) == 10
    assert night[-1].end == t("23:00")
    assert all(s.price == Decimal("400.00") for s in night)


def test_generate_slots_is_deterministic():
    assert generate_slots("day") == generate_slots("day")


def test_merge_contiguous_accepts_any_order():
    assert merge_contiguous(slots("09:30", "09:00", "10:00")) == (t("09:00"), t("10:30"))


def test_merge_contiguous_rejects_gap():
    with pytest.raises(NonContiguousSelection):
        merge_contiguous(slots("09:00", "10:00"))


def test_merge_contiguous_rejects_duplicates_and_empty():
    with pytest.raises(NonContiguousSelection):
        merge_contiguous(slots("09:00", "09:00"))
    with pytest.raises(NonContiguousSelection):
        merge_contiguous([])


@pytest.mark.parametrize(
    "category,start,end",
    [
        ("day", "06:30", "07:30"),
        ("day", "17:30", "18:30"),
        ("night", "17:30", "18:30"),
        ("day", "09:15", "09:45"),
        ("day", "10:00", "10:00"),
        ("day", "11:00", "10:00"),
    ],
)
def test_validate_interval_rejects(category, start, end):
    with pytest.raises(InvalidSlotSelection):
        validate_interval(category, t(start), t(end))


def test_validate_interval_accepts_full_window():
    validate_interval("day", t("07:00"), t("18:00"))
    validate_interval("night", t("18:00"), t("23:00"))


def test_price_and_duration():
    assert price_for_interval("day", t("09:00"), t("10:00")) == Decimal("600.00")
    assert price_for_interval("night", t("19:00"), t("20:30")) == Decimal("1200.00")
    assert duration_hours(t("19:00"), t("20:30")) == 1.5


def test_is_past_only_applies_to_today_and_earlier():
    assert is_past(TODAY, t("08:00"), NOW)
    assert not is_past(TODAY, t("08:30"), NOW)
    assert not is_past(TOMORROW, t("07:30"), NOW)
    assert is_past(TODAY.replace(day=14), t("17:00"), NOW)


def test_ensure_not_past_checks_first_slot():
    ensure_not_past(TODAY, t("08:00"), datetime(2030, 6, 15, 8, 15))
    with pytest.raises(SlotInPast):
        ensure_not_past(TODAY, t("07:30"), NOW)
