from datetime import datetime

import pytest

from groundbook import email_service
from groundbook.domain.bookings.repository import BookingRepository
from groundbook.domain.errors import SlotUnavailable
from groundbook.services import notification_service
from groundbook.services.notification_service import (
    BookingEvent,
    BookingEventType,
    EmailSink,
    LoggingSink,
    NotificationEmitter,
)

from .conftest import ADMIN, NOW, OTHER, REQUESTER, TOMORROW, RecordingSink, slots


def make_event(event_type=BookingEventType.CREATED, **snapshot_overrides):
    snapshot = {
        "id": "b-1",
        "ground_id": "g-1",
        "ground_name": "Day Ground",
        "user_id": REQUESTER.id,
        "booking_date": TOMORROW.isoformat(),
        "start_time": "09:00:00",
        "end_time": "10:00:00",
        "status": "pending",
        "payment_status": "unpaid",
        "total_amount": "600.00",
        "booked_by_admin": False,
    }
    snapshot.update(snapshot_overrides)
    return BookingEvent(
        event_type=event_type,
        booking_id="b-1",
        occurred_at=NOW,
        snapshot=snapshot,
        actor_id=REQUESTER.id,
        recipient_email=REQUESTER.email,
        recipient_name=REQUESTER.name,
    )


@pytest.fixture
def sent(monkeypatch):
    """Capture outgoing emails instead of calling Resend"""
    outbox = []
    monkeypatch.setattr(notification_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "ADMIN_NOTIFICATION_EMAIL", "venue@example.com")
    monkeypatch.setattr(
        email_service,
        "send_email",
        lambda to, subject, mjml_content, from_address=None: outbox.append((to, subject, mjml_content)),
    )
    return outbox


def test_failing_sink_does_not_stop_others():
    def broken(event):
        raise RuntimeError("smtp down")

    recorder = RecordingSink()
    emitter = NotificationEmitter([broken, recorder])

    result = emitter.emit(make_event())

    assert result["delivered"] == 1
    assert len(result["errors"]) == 1
    assert len(recorder.events) == 1


def test_register_adds_sink():
    recorder = RecordingSink()
    emitter = NotificationEmitter([LoggingSink()])
    emitter.register(recorder)
    emitter.emit(make_event())
    assert recorder.types() == ["BookingCreated"]


def test_dedupe_key_identifies_the_state_change():
    first = make_event()
    again = make_event()
    assert first.event_id != again.event_id
    assert first.dedupe_key == again.dedupe_key == ("b-1", "BookingCreated", NOW.isoformat())
    assert make_event(BookingEventType.CONFIRMED).dedupe_key != first.dedupe_key


def test_email_sink_without_api_key_sends_nothing(monkeypatch):
    monkeypatch.setattr(notification_service, "RESEND_API_KEY", None)
    calls = []
    monkeypatch.setattr(email_service, "send_email", lambda *a, **kw: calls.append(a))
    EmailSink()(make_event())
    assert calls == []


def test_new_request_emails_requester_and_venue(sent):
    EmailSink()(make_event())

    recipients = {to for to, _, _ in sent}
    assert recipients == {REQUESTER.email, "venue@example.com"}
    requester_mail = next(body for to, _, body in sent if to == REQUESTER.email)
    assert "Day Ground" in requester_mail
    assert "09:00" in requester_mail


def test_direct_booking_sends_confirmation_only(sent):
    EmailSink()(make_event(booked_by_admin=True, status="confirmed"))
    assert [(to, subject) for to, subject, _ in sent] == [(REQUESTER.email, "Booking Confirmed!")]


def test_duplicate_delivery_is_dropped(sent):
    sink = EmailSink()
    sink(make_event(BookingEventType.CONFIRMED))
    sink(make_event(BookingEventType.CONFIRMED))
    assert len(sent) == 1


def test_reschedule_email_shows_both_slots(sent):
    event = make_event(BookingEventType.RESCHEDULED, start_time="11:00:00", end_time="12:00:00")
    event.previous = dict(event.snapshot, start_time="09:00:00", end_time="10:00:00")
    EmailSink()(event)

    (_, subject, body), = sent
    assert subject == "Booking Rescheduled"
    assert "09:00" in body and "11:00" in body


def test_events_follow_successful_commits_only(db, day_ground, service, sink):
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    with pytest.raises(SlotUnavailable):
        service.create_booking(OTHER, day_ground.id, TOMORROW, slots("09:00"))
    service.confirm_booking(ADMIN, booking.id)

    assert sink.types() == ["BookingCreated", "BookingConfirmed"]
    assert all(e.booking_id == booking.id for e in sink.events)
    assert sink.events[1].snapshot["status"] == "confirmed"


def test_emitter_failure_keeps_the_booking(db, day_ground, service, monkeypatch):
    def explode(event):
        raise RuntimeError("queue unavailable")

    monkeypatch.setattr(service.emitter, "emit", explode)
    booking = service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))

    assert BookingRepository.get_booking(db, booking.id, refresh=True).status == "pending"


def test_event_carries_occurrence_time(day_ground, service, sink, clock):
    clock.now = datetime(2030, 6, 15, 8, 5)
    service.create_booking(REQUESTER, day_ground.id, TOMORROW, slots("09:00"))
    assert sink.events[0].occurred_at == clock.now
