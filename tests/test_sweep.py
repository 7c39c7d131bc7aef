from datetime import datetime

from groundbook.domain.bookings.repository import BookingRepository
from groundbook.models import Booking
from groundbook.services.status_automation import run_booking_sweep

from .conftest import ADMIN, OTHER, REQUESTER, TODAY, slots, t


def status_of(db, booking_id):
    return BookingRepository.get_booking(db, booking_id, refresh=True).status


def book_early_morning(service, clock, ground_id):
    """Two bookings ending by 08:00 today plus one at noon, made before opening"""
    clock.now = datetime.combine(TODAY, t("06:30"))
    pending = service.create_booking(REQUESTER, ground_id, TODAY, slots("07:00"))
    confirmed = service.admin_direct_book(ADMIN, ground_id, TODAY, slots("07:30"))
    later = service.create_booking(OTHER, ground_id, TODAY, slots("12:00"))
    return pending, confirmed, later


def test_sweep_completes_and_expires_elapsed_bookings(db, day_ground, service, clock, sink):
    pending, confirmed, later = book_early_morning(service, clock, day_ground.id)

    now = datetime.combine(TODAY, t("08:30"))
    summary = run_booking_sweep(db, now, service.emitter)

    assert summary["completed"] == 1
    assert summary["expired"] == 1
    assert summary["failed"] == 0
    assert status_of(db, pending.id) == "expired"
    assert status_of(db, confirmed.id) == "completed"
    assert status_of(db, later.id) == "pending"
    assert {"BookingCompleted", "BookingExpired"} <= set(sink.types())
    completed_event = next(e for e in sink.events if e.event_type.value == "BookingCompleted")
    assert completed_event.actor_id == "system"


def test_sweep_is_idempotent(db, day_ground, service, clock):
    book_early_morning(service, clock, day_ground.id)
    now = datetime.combine(TODAY, t("09:00"))

    first = run_booking_sweep(db, now, service.emitter)
    second = run_booking_sweep(db, now, service.emitter)

    assert first["total_updated"] == 2
    assert second["total_updated"] == 0
    assert second["failed"] == 0


def test_booking_ending_exactly_now_is_swept(db, day_ground, service, clock):
    pending, _, _ = book_early_morning(service, clock, day_ground.id)
    run_booking_sweep(db, datetime.combine(TODAY, t("07:29")), service.emitter)
    assert status_of(db, pending.id) == "pending"
    run_booking_sweep(db, datetime.combine(TODAY, t("07:30")), service.emitter)
    assert status_of(db, pending.id) == "expired"


def test_legacy_active_status_is_completed(db, day_ground, service, clock):
    _, confirmed, _ = book_early_morning(service, clock, day_ground.id)
    db.query(Booking).filter(Booking.id == confirmed.id).update({"status": "active"})
    db.commit()

    run_booking_sweep(db, datetime.combine(TODAY, t("09:00")), service.emitter)
    assert status_of(db, confirmed.id) == "completed"


def test_one_failure_does_not_stop_the_sweep(db, day_ground, service, clock, monkeypatch):
    pending, confirmed, _ = book_early_morning(service, clock, day_ground.id)

    failing_id = confirmed.id
    original = BookingRepository.update_booking_status

    def flaky(db_, booking_id, *args, **kwargs):
        if booking_id == failing_id:
            raise RuntimeError("disk full")
        return original(db_, booking_id, *args, **kwargs)

    monkeypatch.setattr(BookingRepository, "update_booking_status", staticmethod(flaky))
    summary = run_booking_sweep(db, datetime.combine(TODAY, t("09:00")), service.emitter)

    assert summary["failed"] == 1
    assert summary["expired"] == 1
    assert status_of(db, confirmed.id) == "confirmed"
    assert status_of(db, pending.id) == "expired"
