"""Booking repository - Database operations for bookings"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Ground, Profile
from ..errors import SlotUnavailable, StaleStateError
from .lifecycle import CONFLICT_STATUSES, BookingStatus

_CONFLICT_VALUES = sorted(s.value for s in CONFLICT_STATUSES)


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: str, refresh: bool = False) -> Optional[Booking]:
        """Get a booking by ID; ``refresh`` bypasses the identity map to read the committed row"""
        stmt = select(Booking).options(joinedload(Booking.ground)).where(Booking.id == booking_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return db.execute(stmt).scalars().first()

    @staticmethod
    def get_bookings_for_ground_date(db: Session, ground_id: str, booking_date: date) -> list[Booking]:
        """Slot-holding and completed bookings for one ground and date, ordered by start"""
        return (
            db.query(Booking)
            .filter(
                Booking.ground_id == ground_id,
                Booking.booking_date == booking_date,
                Booking.status.in_(_CONFLICT_VALUES),
            )
            .order_by(Booking.start_time.asc())
            .all()
        )

    @staticmethod
    def insert_booking(db: Session, booking: Booking) -> str:
        """
        Stage a new booking and flush it so storage constraints fire now.

        Raises:
            SlotUnavailable: the occupied-slot unique index rejected the row
        """
        db.add(booking)
        try:
            db.flush()
        except IntegrityError as e:
            db.rollback()
            raise SlotUnavailable() from e
        return booking.id

    @staticmethod
    def update_booking_status(
        db: Session,
        booking_id: str,
        new_status: BookingStatus,
        actor_id: Optional[str],
        expected_current_status: str,
        now: datetime,
    ) -> None:
        """
        Compare-and-set the status of one booking.

        Raises:
            StaleStateError: the stored status is no longer ``expected_current_status``
        """
        values = {"status": BookingStatus(new_status).value, "updated_at": now}
        if new_status == BookingStatus.CONFIRMED:
            values["confirmed_at"] = now
            values["confirmed_by"] = actor_id
        elif new_status == BookingStatus.CANCELLED:
            values["cancelled_by"] = actor_id

        result = db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected_current_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleStateError()

    @staticmethod
    def update_booking_interval(
        db: Session,
        booking_id: str,
        new_date: date,
        new_start: time,
        new_end: time,
        hours: float,
        total_amount: Decimal,
        expected_current_status: str,
        now: datetime,
    ) -> None:
        """
        Move a booking to a new date/interval without touching its status.

        Raises:
            StaleStateError: status changed since it was read
            SlotUnavailable: the occupied-slot unique index rejected the move
        """
        try:
            result = db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == expected_current_status)
                .values(
                    booking_date=new_date,
                    start_time=new_start,
                    end_time=new_end,
                    hours=hours,
                    total_amount=total_amount,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as e:
            db.rollback()
            raise SlotUnavailable() from e
        if result.rowcount == 0:
            raise StaleStateError()

    @staticmethod
    def mark_paid(db: Session, booking_id: str, expected_current_status: str, now: datetime) -> None:
        result = db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == expected_current_status,
                Booking.payment_status == "unpaid",
            )
            .values(payment_status="paid", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleStateError()

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        """Stage a physical delete; commit is left to the caller"""
        db.delete(booking)
        db.flush()

    @staticmethod
    def get_user_bookings(db: Session, user_id: str) -> list[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.ground))
            .filter(Booking.user_id == user_id)
            .order_by(Booking.booking_date.desc(), Booking.start_time.desc())
            .all()
        )

    @staticmethod
    def search_bookings(
        db: Session,
        booking_date: Optional[date] = None,
        ground_id: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        """Search and filter bookings for the admin dashboard"""
        query = db.query(Booking).options(joinedload(Booking.ground))

        if booking_date:
            query = query.filter(Booking.booking_date == booking_date)
        if ground_id:
            query = query.filter(Booking.ground_id == ground_id)
        if status and status != "all":
            query = query.filter(Booking.status == status)
        if user_id:
            query = query.filter(Booking.user_id == user_id)

        return query.order_by(Booking.booking_date.desc(), Booking.start_time.asc()).all()

    @staticmethod
    def get_elapsed_bookings(db: Session, statuses: list[str], now: datetime) -> list[Booking]:
        """Bookings in ``statuses`` whose end instant is at or before ``now``"""
        today = now.date()
        current_time = now.time()
        return (
            db.query(Booking)
            .filter(
                Booking.status.in_(statuses),
                or_(
                    Booking.booking_date < today,
                    and_(Booking.booking_date == today, Booking.end_time <= current_time),
                ),
            )
            .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
            .all()
        )

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def get_ground(db: Session, ground_id: str) -> Optional[Ground]:
        return db.query(Ground).filter(Ground.id == ground_id).first()

    @staticmethod
    def get_profile(db: Session, user_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == user_id).first()
