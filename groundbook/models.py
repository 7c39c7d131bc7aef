import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .domain.bookings.lifecycle import OCCUPYING_STATUSES, BookingStatus, PaymentStatus

# SQL predicate shared by the partial unique index on both dialects
_OCCUPYING_SQL = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in sorted(OCCUPYING_STATUSES, key=lambda s: s.value))
)


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class Ground(Base):
    __tablename__ = "grounds"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    category = Column(String(10), nullable=False)  # day, night - drives slot window and price
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    price_per_hour = Column(Numeric(10, 2), nullable=True)  # display only; pricing is per category
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Grounds are deactivated, never deleted, while bookings reference them
    bookings = relationship("Booking", back_populates="ground", passive_deletes="all")

    __table_args__ = (CheckConstraint("category IN ('day', 'night')", name="ck_grounds_category"),)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ground_id = Column(
        String(36), ForeignKey("grounds.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id = Column(String(128), nullable=False, index=True)  # identity provider subject
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)  # inclusive
    end_time = Column(Time, nullable=False)  # exclusive
    hours = Column(Float, nullable=False)
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)
    payment_status = Column(String(20), default=PaymentStatus.UNPAID.value, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    booked_by_admin = Column(Boolean, default=False, nullable=False)  # walk-in / offline booking
    confirmed_at = Column(DateTime, nullable=True)
    confirmed_by = Column(String(128), nullable=True)
    cancelled_by = Column(String(128), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    ground = relationship("Ground", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_interval"),
        # Storage-level guard: two slot-holding bookings can never claim the same starting slot
        Index(
            "uq_bookings_occupied_start",
            "ground_id",
            "booking_date",
            "start_time",
            unique=True,
            postgresql_where=text(_OCCUPYING_SQL),
            sqlite_where=text(_OCCUPYING_SQL),
        ),
        Index("ix_bookings_ground_date_status", "ground_id", "booking_date", "status"),
    )


class GroundDayLock(Base):
    """One row per (ground, date); row-locked to serialize slot claims on that key"""

    __tablename__ = "ground_day_locks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ground_id = Column(String(36), ForeignKey("grounds.id", ondelete="CASCADE"), nullable=False)
    booking_date = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("ground_id", "booking_date", name="uq_ground_day_locks_key"),
    )


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(128), primary_key=True)  # identity provider subject
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone_number = Column(String(50), nullable=True)
    is_online = Column(Boolean, default=False, nullable=False)
    last_active_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="user")  # admin, user
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)


class AuditLog(Base):
    """Admin actions on bookings and grounds, written in the same transaction as the action"""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    admin_id = Column(String(128), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    target_table = Column(String(50), nullable=True)
    target_id = Column(String(36), nullable=True)
    target_user_id = Column(String(128), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
