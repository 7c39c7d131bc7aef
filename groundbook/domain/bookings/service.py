"""Booking service - Business logic for booking commands and read models"""

import logging
from datetime import date, datetime, time
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from ...cache import (
    get_occupancy_cached,
    get_occupancy_generation,
    invalidate_occupancy,
    set_occupancy_cached,
)
from ...models import Booking, Ground, generate_uuid
from ...services.audit_log import log_admin_action
from ...services.notification_service import (
    BookingEvent,
    BookingEventType,
    NotificationEmitter,
    booking_snapshot,
    get_emitter,
)
from ...shared.actor import Actor
from ...shared.clock import venue_now
from ..errors import InvalidTransition, NotFound, PermissionDenied, ResourceInactive, SlotUnavailable
from ..scheduling.availability import Occupancy, SlotAvailability, calculate_availability
from ..scheduling.conflicts import has_conflict
from ..scheduling.slots import (
    duration_hours,
    ensure_not_past,
    merge_contiguous,
    price_for_interval,
    validate_interval,
)
from .lifecycle import (
    ActorRole,
    BookingStatus,
    PaymentStatus,
    check_transition,
    is_occupying,
    is_terminal,
    role_for,
)
from .locks import ground_day_guard
from .repository import BookingRepository

logger = logging.getLogger(__name__)


def notify(
    db: Session,
    emitter: NotificationEmitter,
    event_type: BookingEventType,
    booking: Booking,
    actor_id: Optional[str],
    occurred_at: datetime,
    previous: Optional[dict] = None,
    snapshot: Optional[dict] = None,
) -> None:
    """
    Emit a booking event after its write has committed.

    Never raises: the booking is already durable and a lost notification
    must not turn a successful command into a failure.
    """
    try:
        snapshot = snapshot or booking_snapshot(booking)
        profile = BookingRepository.get_profile(db, snapshot["user_id"])
        emitter.emit(
            BookingEvent(
                event_type=event_type,
                booking_id=snapshot["id"],
                occurred_at=occurred_at,
                snapshot=snapshot,
                actor_id=actor_id,
                recipient_email=profile.email if profile else None,
                recipient_name=profile.full_name if profile else None,
                previous=previous,
            )
        )
    except Exception as e:
        logger.error(f"❌ Failed to emit {event_type.value}: {e}")


class BookingService:
    """Service layer for booking commands; every slot claim runs inside ground_day_guard"""

    def __init__(
        self,
        db: Session,
        emitter: Optional[NotificationEmitter] = None,
        clock: Callable[[], datetime] = venue_now,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.emitter = emitter or get_emitter()
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id, refresh=True)
        if not booking:
            raise NotFound("Booking not found")
        return booking

    def _get_active_ground(self, ground_id: str) -> Ground:
        ground = self.repo.get_ground(self.db, ground_id)
        if not ground:
            raise NotFound("Ground not found")
        if not ground.is_active:
            raise ResourceInactive()
        return ground

    @staticmethod
    def _require_admin(actor: Actor, what: str) -> None:
        if not actor.is_admin:
            logger.warning(f"⚠️ Non-admin {actor.id} attempted to {what}")
            raise PermissionDenied(f"Only admins can {what}")

    # ------------------------------------------------------------------
    # Slot claims
    # ------------------------------------------------------------------

    def create_booking(
        self,
        actor: Actor,
        ground_id: str,
        booking_date: date,
        intervals: Iterable[tuple[time, time]],
    ) -> Booking:
        """Request a booking; it holds its slots as pending until an admin decides"""
        check_transition(None, BookingStatus.PENDING, ActorRole.REQUESTER)
        return self._claim(
            actor,
            ground_id,
            booking_date,
            intervals,
            owner_id=actor.id,
            status=BookingStatus.PENDING,
        )

    def admin_direct_book(
        self,
        actor: Actor,
        ground_id: str,
        booking_date: date,
        intervals: Iterable[tuple[time, time]],
        user_id: Optional[str] = None,
    ) -> Booking:
        """Record a walk-in / offline booking as confirmed straight away"""
        self._require_admin(actor, "create direct bookings")
        check_transition(None, BookingStatus.CONFIRMED, ActorRole.ADMIN)
        return self._claim(
            actor,
            ground_id,
            booking_date,
            intervals,
            owner_id=user_id or actor.id,
            status=BookingStatus.CONFIRMED,
        )

    def _claim(
        self,
        actor: Actor,
        ground_id: str,
        booking_date: date,
        intervals: Iterable[tuple[time, time]],
        owner_id: str,
        status: BookingStatus,
    ) -> Booking:
        start, end = merge_contiguous(intervals)
        ground = self._get_active_ground(ground_id)
        validate_interval(ground.category, start, end)

        now = self.clock()
        direct = status == BookingStatus.CONFIRMED
        booking = Booking(
            id=generate_uuid(),
            ground_id=ground.id,
            user_id=owner_id,
            booking_date=booking_date,
            start_time=start,
            end_time=end,
            hours=duration_hours(start, end),
            status=status.value,
            payment_status=PaymentStatus.UNPAID.value,
            total_amount=price_for_interval(ground.category, start, end),
            booked_by_admin=direct,
            confirmed_at=now if direct else None,
            confirmed_by=actor.id if direct else None,
            created_at=now,
            updated_at=now,
        )

        with ground_day_guard(self.db, ground.id, booking_date):
            if has_conflict(self.db, ground.id, booking_date, start, end):
                logger.warning(
                    f"⚠️ Slot conflict for {actor.id} on ground {ground.id} "
                    f"{booking_date} {start:%H:%M}-{end:%H:%M}"
                )
                raise SlotUnavailable()
            ensure_not_past(booking_date, start, now)
            self.repo.insert_booking(self.db, booking)
            if direct:
                log_admin_action(
                    self.db,
                    admin_id=actor.id,
                    action="direct_booking",
                    target_table="bookings",
                    target_id=booking.id,
                    target_user_id=owner_id,
                    details={"ground_id": ground.id, "booking_date": booking_date.isoformat()},
                )
            self.db.commit()

        invalidate_occupancy(ground.id, booking_date)
        logger.info(
            f"✅ Booking {booking.id} created ({status.value}) by {actor.id} on ground "
            f"{ground.id} {booking_date} {start:%H:%M}-{end:%H:%M}"
        )
        notify(
            self.db,
            self.emitter,
            BookingEventType.CREATED,
            booking,
            actor.id,
            now,
            snapshot=booking_snapshot(booking, ground.name),
        )
        return booking

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def confirm_booking(self, actor: Actor, booking_id: str) -> Booking:
        self._require_admin(actor, "confirm bookings")
        booking = self._get_booking(booking_id)
        current = booking.status
        check_transition(current, BookingStatus.CONFIRMED, ActorRole.ADMIN)

        now = self.clock()
        with ground_day_guard(self.db, booking.ground_id, booking.booking_date):
            if has_conflict(
                self.db,
                booking.ground_id,
                booking.booking_date,
                booking.start_time,
                booking.end_time,
                exclude_booking_id=booking.id,
            ):
                logger.warning(f"⚠️ Booking {booking.id} overlaps another booking, cannot confirm")
                raise SlotUnavailable()
            self.repo.update_booking_status(
                self.db, booking.id, BookingStatus.CONFIRMED, actor.id, current, now
            )
            self._audit(actor, "confirm_booking", booking)
            self.db.commit()

        return self._after_transition(actor, booking, BookingEventType.CONFIRMED, now)

    def reject_booking(self, actor: Actor, booking_id: str) -> Booking:
        self._require_admin(actor, "reject bookings")
        booking = self._get_booking(booking_id)
        return self._apply_transition(
            actor, booking, BookingStatus.REJECTED, ActorRole.ADMIN, "reject_booking"
        )

    def cancel_booking(self, actor: Actor, booking_id: str) -> Booking:
        """Owners may cancel while pending; admins may also cancel confirmed bookings"""
        booking = self._get_booking(booking_id)
        role = role_for(actor, booking.user_id)
        return self._apply_transition(
            actor, booking, BookingStatus.CANCELLED, role, "cancel_booking"
        )

    def _apply_transition(
        self,
        actor: Actor,
        booking: Booking,
        target: BookingStatus,
        role: ActorRole,
        audit_action: str,
    ) -> Booking:
        current = booking.status
        check_transition(current, target, role)

        now = self.clock()
        try:
            self.repo.update_booking_status(self.db, booking.id, target, actor.id, current, now)
            if role == ActorRole.ADMIN:
                self._audit(actor, audit_action, booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        event_type = {
            BookingStatus.REJECTED: BookingEventType.REJECTED,
            BookingStatus.CANCELLED: BookingEventType.CANCELLED,
        }[target]
        return self._after_transition(actor, booking, event_type, now)

    def _after_transition(
        self, actor: Actor, booking: Booking, event_type: BookingEventType, now: datetime
    ) -> Booking:
        booking = self._get_booking(booking.id)
        invalidate_occupancy(booking.ground_id, booking.booking_date)
        logger.info(f"✅ Booking {booking.id} is now {booking.status} (by {actor.id})")
        notify(self.db, self.emitter, event_type, booking, actor.id, now)
        return booking

    def apply_action(self, actor: Actor, booking_id: str, action: str) -> Booking:
        """Single entry point for confirm / reject / cancel requests"""
        handlers = {
            "confirm": self.confirm_booking,
            "reject": self.reject_booking,
            "cancel": self.cancel_booking,
        }
        if action not in handlers:
            raise InvalidTransition(f"Unknown action '{action}'")
        return handlers[action](actor, booking_id)

    # ------------------------------------------------------------------
    # Reschedule, payment, purge
    # ------------------------------------------------------------------

    def reschedule_booking(
        self,
        actor: Actor,
        booking_id: str,
        new_date: date,
        intervals: Iterable[tuple[time, time]],
    ) -> Booking:
        """
        Move a live booking to a new date and interval, keeping its status.

        On conflict the original booking is left untouched.
        """
        booking = self._get_booking(booking_id)
        role = role_for(actor, booking.user_id)
        current = booking.status
        if is_terminal(current):
            raise InvalidTransition(f"A {current} booking cannot be rescheduled")

        start, end = merge_contiguous(intervals)
        ground = self._get_active_ground(booking.ground_id)
        validate_interval(ground.category, start, end)

        previous = booking_snapshot(booking, ground.name)
        old_date = booking.booking_date
        now = self.clock()

        with ground_day_guard(self.db, ground.id, new_date):
            if has_conflict(
                self.db, ground.id, new_date, start, end, exclude_booking_id=booking.id
            ):
                logger.warning(
                    f"⚠️ Reschedule of {booking.id} to {new_date} {start:%H:%M}-{end:%H:%M} conflicts"
                )
                raise SlotUnavailable()
            ensure_not_past(new_date, start, now)
            self.repo.update_booking_interval(
                self.db,
                booking.id,
                new_date,
                start,
                end,
                duration_hours(start, end),
                price_for_interval(ground.category, start, end),
                current,
                now,
            )
            if role == ActorRole.ADMIN:
                self._audit(
                    actor,
                    "reschedule_booking",
                    booking,
                    {"from": previous, "to_date": new_date.isoformat()},
                )
            self.db.commit()

        invalidate_occupancy(ground.id, old_date)
        booking = self._get_booking(booking.id)
        invalidate_occupancy(ground.id, booking.booking_date)
        logger.info(
            f"✅ Booking {booking.id} rescheduled to {new_date} {start:%H:%M}-{end:%H:%M} by {actor.id}"
        )
        notify(
            self.db,
            self.emitter,
            BookingEventType.RESCHEDULED,
            booking,
            actor.id,
            now,
            previous=previous,
        )
        return booking

    def mark_paid(self, actor: Actor, booking_id: str) -> Booking:
        """Record an offline payment; no status change"""
        self._require_admin(actor, "record payments")
        booking = self._get_booking(booking_id)
        if BookingStatus(booking.status) in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
            raise InvalidTransition(f"A {booking.status} booking cannot be marked as paid")
        if booking.payment_status == PaymentStatus.PAID.value:
            return booking

        try:
            self.repo.mark_paid(self.db, booking.id, booking.status, self.clock())
            self._audit(actor, "mark_paid", booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"💰 Booking {booking.id} marked as paid by {actor.id}")
        return self._get_booking(booking.id)

    def purge_booking(self, actor: Actor, booking_id: str) -> None:
        """Physically delete a booking, releasing its slot"""
        self._require_admin(actor, "delete bookings")
        booking = self._get_booking(booking_id)
        snapshot = booking_snapshot(booking)
        ground_id, booking_date = booking.ground_id, booking.booking_date
        held_slot = is_occupying(booking.status)
        now = self.clock()

        try:
            self.repo.delete_booking(self.db, booking)
            self._audit(actor, "purge_booking", booking, {"booking": snapshot})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        invalidate_occupancy(ground_id, booking_date)
        logger.info(f"🗑️ Booking {snapshot['id']} purged by {actor.id}")
        if held_slot:
            snapshot["status"] = BookingStatus.CANCELLED.value
            notify(
                self.db,
                self.emitter,
                BookingEventType.CANCELLED,
                booking,
                actor.id,
                now,
                snapshot=snapshot,
            )

    def _audit(
        self, actor: Actor, action: str, booking: Booking, details: Optional[dict] = None
    ) -> None:
        log_admin_action(
            self.db,
            admin_id=actor.id,
            action=action,
            target_table="bookings",
            target_id=booking.id,
            target_user_id=booking.user_id,
            details=details,
        )

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def get_availability(
        self, actor: Actor, ground_id: str, booking_date: date
    ) -> tuple[Ground, list[SlotAvailability]]:
        """
        Slot grid for one ground and date as seen by ``actor``.
        Reads the cached occupancy snapshot when present; never used to gate a write.
        """
        ground = self.repo.get_ground(self.db, ground_id)
        if not ground:
            raise NotFound("Ground not found")

        generation = get_occupancy_generation(ground.id, booking_date)
        cached = get_occupancy_cached(ground.id, booking_date, generation)
        if cached is not None:
            occupancies = [Occupancy.from_dict(item) for item in cached]
        else:
            occupancies = [
                Occupancy.from_booking(b)
                for b in self.repo.get_bookings_for_ground_date(self.db, ground.id, booking_date)
            ]
            set_occupancy_cached(
                ground.id, booking_date, generation, [o.to_dict() for o in occupancies]
            )

        grid = calculate_availability(
            ground.category, booking_date, self.clock(), actor.id, occupancies
        )
        return ground, grid

    def list_my_bookings(self, actor: Actor) -> list[Booking]:
        return self.repo.get_user_bookings(self.db, actor.id)

    def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        booking = self._get_booking(booking_id)
        role_for(actor, booking.user_id)
        return booking

    def list_bookings(
        self,
        actor: Actor,
        booking_date: Optional[date] = None,
        ground_id: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        """Admin dashboard listing; each view is recorded in the audit log"""
        self._require_admin(actor, "view all bookings")
        bookings = self.repo.search_bookings(self.db, booking_date, ground_id, status, user_id)
        log_admin_action(
            self.db,
            admin_id=actor.id,
            action="view_bookings",
            target_table="bookings",
            details={
                "booking_date": booking_date.isoformat() if booking_date else None,
                "ground_id": ground_id,
                "status": status,
                "count": len(bookings),
            },
        )
        self.db.commit()
        return bookings
