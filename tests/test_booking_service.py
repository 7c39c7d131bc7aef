from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from groundbook.domain.bookings.repository import BookingRepository
from groundbook.domain.bookings.service import BookingService
from groundbook.domain.errors import (
    InvalidSlotSelection,
    InvalidTransition,
    NonContiguousSelection,
    NotFound,
    PermissionDenied,
    ResourceInactive,
    SlotInPast,
    SlotUnavailable,
)
from groundbook.models import AuditLog, Booking
from groundbook.services.status_automation import run_booking_sweep

from .conftest import ADMIN, OTHER, REQUESTER, TODAY, TOMORROW, slots, t


def stored(db, booking_id):
    return BookingRepository.get_booking(db, booking_id, refresh=True)


def test_request_two_slots(db, day_ground, service, sink):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:30", "09:00"))

    saved = stored(db, booking.id)
    assert saved.status == "pending"
    assert saved.payment_status == "unpaid"
    assert (saved.start_time, saved.end_time) == (t("09:00"), t("10:00"))
    assert saved.hours == 1.0
    assert Decimal(saved.total_amount) == Decimal("600.00")
    assert not saved.booked_by_admin
    assert sink.types() == ["BookingCreated"]
    assert sink.events[0].snapshot["ground_name"] == "Day Ground"
    assert sink.events[0].recipient_email == REQUESTER.email


def test_night_pricing(db, night_ground, service):
    booking = service.create_booking(REQUESTER, night_ground.id, TOMORROW, slots("18:00", "18:30", "19:00"))
    assert Decimal(stored(db, booking.id).total_amount) == Decimal("1200.00")


def test_gap_in_selection_is_rejected(db, day_ground, service, sink):
    with pytest.raises(NonContiguousSelection):
        service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00", "10:00"))
    assert db.query(Booking).count() == 0
    assert sink.events == []


def test_outside_window_is_rejected(day_ground, night_ground, service):
    with pytest.raises(InvalidSlotSelection):
        service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("18:00"))
    with pytest.raises(InvalidSlotSelection):
        service.create_booking(REQUESTER, night_ground.id, TOMORROW, slots("17:30"))


def test_past_slot_is_rejected(day_ground, service):
    with pytest.raises(SlotInPast):
        service.create_booking(REQUESTER, day_ground.id, TODAY, slots("07:30"))
    # the slot in progress can still be booked
    service.create_booking(REQUESTER, day_ground.id, TODAY, slots("08:00"))


def test_earlier_date_is_rejected_even_for_late_slots(night_ground, service):
    with pytest.raises(SlotInPast):
        service.create_booking(REQUESTER, night_ground.id, TODAY - timedelta(days=1), slots("22:00"))


def test_unknown_and_inactive_ground(db, day_ground, service):
    with pytest.raises(NotFound):
        service.create_booking(REQUESTER, "00000000-0000-0000-0000-000000000000", TOMORROW, slots("09:00"))

    day_ground.is_active = False
    db.commit()
    with pytest.raises(ResourceInactive):
        service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))


def test_partial_overlap_is_rejected(db, day_ground, service, sink):
    service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00", "09:30"))
    with pytest.raises(SlotUnavailable):
        service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:30", "10:00"))
    assert db.query(Booking).count() == 1
    assert sink.types() == ["BookingCreated"]


def test_adjacent_booking_is_accepted(db, day_ground, service):
    service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00", "09:30"))
    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("10:00"))
    assert db.query(Booking).count() == 2


def test_confirm_then_overlap_is_rejected(db, day_ground, service, sink, clock):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("14:00", "14:30"))
    confirmed = service.confirm_booking(ADMIN, booking.id)

    assert confirmed.status == "confirmed"
    assert confirmed.confirmed_at == clock.now
    assert confirmed.confirmed_by == ADMIN.id
    assert sink.types() == ["BookingCreated", "BookingConfirmed"]

    with pytest.raises(SlotUnavailable):
        service.create_booking(OTHER, day_ground.id, TOMORROW, slots("14:30"))

    audit = db.query(AuditLog).filter(AuditLog.action == "confirm_booking").one()
    assert audit.target_id == booking.id
    assert audit.admin_id == ADMIN.id


def test_non_admin_cannot_confirm(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    with pytest.raises(PermissionDenied):
        service.confirm_booking(REQUESTER, booking.id)


def test_owner_cannot_cancel_confirmed_booking(db, day_ground, service, sink):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.confirm_booking(ADMIN, booking.id)

    with pytest.raises(InvalidTransition):
        service.cancel_booking(REQUESTER, booking.id)

    assert stored(db, booking.id).status == "confirmed"
    assert "BookingCancelled" not in sink.types()


def test_owner_cancels_pending_and_frees_slot(db, day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    cancelled = service.cancel_booking(REQUESTER, booking.id)
    assert cancelled.status == "cancelled"
    assert cancelled.cancelled_by == REQUESTER.id
    # requester cancellations are not admin actions
    assert db.query(AuditLog).count() == 0

    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:00"))


def test_stranger_cannot_cancel(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    with pytest.raises(PermissionDenied):
        service.cancel_booking(OTHER, booking.id)


def test_admin_rejects_and_cancels(db, day_ground, service, sink):
    first = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    second = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("10:00"))
    service.confirm_booking(ADMIN, second.id)

    assert service.reject_booking(ADMIN, first.id).status == "rejected"
    assert service.cancel_booking(ADMIN, second.id).status == "cancelled"
    assert sink.types()[-2:] == ["BookingRejected", "BookingCancelled"]

    with pytest.raises(InvalidTransition):
        service.confirm_booking(ADMIN, first.id)


def test_apply_action(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    assert service.apply_action(ADMIN, booking.id, "confirm").status == "confirmed"
    with pytest.raises(InvalidTransition):
        service.apply_action(ADMIN, booking.id, "archive")


def test_admin_direct_booking(db, day_ground, service, sink):
    booking = service.admin_direct_book(ADMIN, day_ground.id, TOMORROW, slots("16:00"), user_id=REQUESTER.id)

    saved = stored(db, booking.id)
    assert saved.status == "confirmed"
    assert saved.booked_by_admin
    assert saved.user_id == REQUESTER.id
    assert saved.confirmed_by == ADMIN.id
    assert db.query(AuditLog).filter(AuditLog.action == "direct_booking").count() == 1
    assert sink.events[-1].snapshot["booked_by_admin"] is True

    with pytest.raises(PermissionDenied):
        service.admin_direct_book(REQUESTER, day_ground.id, TOMORROW, slots("17:00"))


def test_reschedule_moves_booking(db, day_ground, service, sink):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    later = TOMORROW + timedelta(days=1)

    moved = service.reschedule_booking(REQUESTER, booking.id, later, slots("11:00", "11:30"))

    assert moved.booking_date == later
    assert (moved.start_time, moved.end_time) == (t("11:00"), t("12:00"))
    assert moved.status == "pending"
    assert Decimal(moved.total_amount) == Decimal("600.00")
    event = sink.events[-1]
    assert event.event_type.value == "BookingRescheduled"
    assert event.previous["start_time"] == "09:00:00"

    # the old slot is free again
    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:00"))


def test_reschedule_within_own_interval(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00", "09:30"))
    moved = service.reschedule_booking(REQUESTER, booking.id, TOMORROW, slots("09:30", "10:00"))
    assert (moved.start_time, moved.end_time) == (t("09:30"), t("10:30"))


def test_reschedule_onto_completed_booking_fails(db, day_ground, service, clock, sink):
    clock.now = datetime.combine(TODAY, t("06:30"))
    played = service.admin_direct_book(ADMIN, day_ground.id, TODAY, slots("07:00", "07:30"))
    upcoming = service.admin_direct_book(ADMIN, day_ground.id, TOMORROW, slots("10:00", "10:30"))

    clock.now = datetime.combine(TODAY, t("09:00"))
    run_booking_sweep(db, clock.now, service.emitter)
    assert stored(db, played.id).status == "completed"

    events_before = len(sink.events)
    with pytest.raises(SlotUnavailable):
        service.reschedule_booking(ADMIN, upcoming.id, TODAY, slots("07:00", "07:30"))

    unchanged = stored(db, upcoming.id)
    assert unchanged.booking_date == TOMORROW
    assert (unchanged.start_time, unchanged.end_time) == (t("10:00"), t("11:00"))
    assert unchanged.status == "confirmed"
    assert len(sink.events) == events_before


def test_terminal_booking_cannot_be_rescheduled(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.cancel_booking(REQUESTER, booking.id)
    with pytest.raises(InvalidTransition):
        service.reschedule_booking(REQUESTER, booking.id, TOMORROW, slots("10:00"))


def test_mark_paid(db, day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.confirm_booking(ADMIN, booking.id)

    paid = service.mark_paid(ADMIN, booking.id)
    assert paid.payment_status == "paid"
    assert paid.status == "confirmed"
    # already paid is a no-op
    assert service.mark_paid(ADMIN, booking.id).payment_status == "paid"
    assert db.query(AuditLog).filter(AuditLog.action == "mark_paid").count() == 1

    with pytest.raises(PermissionDenied):
        service.mark_paid(REQUESTER, booking.id)


def test_cancelled_booking_cannot_be_paid(day_ground, service):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.cancel_booking(REQUESTER, booking.id)
    with pytest.raises(InvalidTransition):
        service.mark_paid(ADMIN, booking.id)


def test_purge_releases_slot(db, day_ground, service, sink):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.purge_booking(ADMIN, booking.id)

    assert stored(db, booking.id) is None
    assert sink.types()[-1] == "BookingCancelled"
    assert db.query(AuditLog).filter(AuditLog.action == "purge_booking").count() == 1
    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:00"))

    with pytest.raises(NotFound):
        service.purge_booking(ADMIN, booking.id)


def test_get_booking_and_listings(db, day_ground, service):
    mine = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("10:00"))

    assert service.get_booking(REQUESTER, mine.id).id == mine.id
    with pytest.raises(PermissionDenied):
        service.get_booking(OTHER, mine.id)

    assert [b.id for b in service.list_my_bookings(REQUESTER)] == [mine.id]
    assert len(service.list_bookings(ADMIN, booking_date=TOMORROW)) == 2
    assert len(service.list_bookings(ADMIN, user_id=OTHER.id)) == 1
    assert db.query(AuditLog).filter(AuditLog.action == "view_bookings").count() == 2

    with pytest.raises(PermissionDenied):
        service.list_bookings(REQUESTER)


def test_failed_claim_leaves_session_usable(db, day_ground, emitter, clock):
    service = BookingService(db, emitter=emitter, clock=clock)
    service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    with pytest.raises(SlotUnavailable):
        service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:00"))
    service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:30"))
    assert db.query(Booking).count() == 2


def booking_in_status(db, service, ground_id, status):
    booking = service.create_booking(REQUESTER, ground_id, TOMORROW, slots("09:00"))
    if status in ("confirmed", "completed"):
        service.confirm_booking(ADMIN, booking.id)
    elif status == "rejected":
        service.reject_booking(ADMIN, booking.id)
    elif status == "cancelled":
        service.cancel_booking(REQUESTER, booking.id)
    if status == "completed":
        db.query(Booking).filter(Booking.id == booking.id).update({"status": "completed"})
        db.commit()
    return booking.id


@pytest.mark.parametrize(
    "status, action",
    [
        ("rejected", "confirm"),
        ("cancelled", "confirm"),
        ("completed", "confirm"),
        ("rejected", "reject"),
        ("cancelled", "reject"),
        ("completed", "reject"),
        ("confirmed", "reject"),
        ("completed", "cancel"),
    ],
)
def test_refused_transition_leaves_booking_untouched(db, day_ground, service, sink, status, action):
    booking_id = booking_in_status(db, service, day_ground.id, status)
    before = stored(db, booking_id)
    snapshot = (before.status, before.confirmed_at, before.confirmed_by, before.updated_at)
    events = len(sink.events)
    audits = db.query(AuditLog).count()

    handler = {
        "confirm": service.confirm_booking,
        "reject": service.reject_booking,
        "cancel": service.cancel_booking,
    }[action]
    with pytest.raises(InvalidTransition):
        handler(ADMIN, booking_id)

    after = stored(db, booking_id)
    assert (after.status, after.confirmed_at, after.confirmed_by, after.updated_at) == snapshot
    assert len(sink.events) == events
    assert db.query(AuditLog).count() == audits
