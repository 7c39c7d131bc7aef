"""
Booking lifecycle state machine

Statuses: pending → confirmed → completed
                  ↘ rejected / cancelled / expired

'active' is a legacy alias of 'confirmed': it is accepted wherever a stored
status is read, but never written by this code.

Who may trigger what:
    (new)     → pending    requester
    (new)     → confirmed  admin (direct booking)
    pending   → confirmed  admin
    pending   → rejected   admin
    pending   → cancelled  requester (owner) or admin
    confirmed → cancelled  admin
    confirmed → completed  system (sweep, once the booking has ended)
    pending   → expired    system (sweep)
    confirmed → expired    system
"""

from enum import Enum
from typing import Optional

from ..errors import InvalidTransition, PermissionDenied


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"  # legacy synonym for confirmed
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class ActorRole(str, Enum):
    REQUESTER = "requester"
    ADMIN = "admin"
    SYSTEM = "system"


# Statuses that hold their slot on the grid
OCCUPYING_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE}
)

# Statuses that block a new claim on the same interval; completed bookings keep
# their historical slot record so it cannot be booked a second time
CONFLICT_STATUSES = OCCUPYING_STATUSES | {BookingStatus.COMPLETED}

TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.EXPIRED,
    }
)

# (from, to) -> roles allowed to perform it. None as "from" means creation.
TRANSITIONS: dict[tuple[Optional[BookingStatus], BookingStatus], frozenset] = {
    (None, BookingStatus.PENDING): frozenset({ActorRole.REQUESTER}),
    (None, BookingStatus.CONFIRMED): frozenset({ActorRole.ADMIN}),
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): frozenset({ActorRole.ADMIN}),
    (BookingStatus.PENDING, BookingStatus.REJECTED): frozenset({ActorRole.ADMIN}),
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset(
        {ActorRole.REQUESTER, ActorRole.ADMIN}
    ),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): frozenset({ActorRole.ADMIN}),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): frozenset({ActorRole.SYSTEM}),
    (BookingStatus.PENDING, BookingStatus.EXPIRED): frozenset({ActorRole.SYSTEM}),
    (BookingStatus.CONFIRMED, BookingStatus.EXPIRED): frozenset({ActorRole.SYSTEM}),
}


def normalize_status(status) -> Optional[BookingStatus]:
    """Coerce a stored status string to the enum, folding the legacy 'active' alias"""
    if status is None:
        return None
    status = BookingStatus(status)
    if status == BookingStatus.ACTIVE:
        return BookingStatus.CONFIRMED
    return status


def is_terminal(status) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def is_occupying(status) -> bool:
    return BookingStatus(status) in OCCUPYING_STATUSES


def can_transition(current, target, role: ActorRole) -> bool:
    key = (normalize_status(current), normalize_status(target))
    return role in TRANSITIONS.get(key, frozenset())


def check_transition(current, target, role: ActorRole) -> None:
    """
    Raise InvalidTransition unless ``role`` may move a booking from ``current``
    to ``target``. Pass ``current=None`` to validate a creation.
    """
    if not can_transition(current, target, role):
        source = BookingStatus(current).value if current is not None else "new"
        raise InvalidTransition(
            f"Cannot change booking from '{source}' to '{BookingStatus(target).value}' as {role.value}"
        )


def role_for(actor, owner_id: str) -> ActorRole:
    """
    Resolve the role an actor plays for one booking.
    Admins act as admin even on their own bookings.
    """
    if actor.is_admin:
        return ActorRole.ADMIN
    if actor.id == owner_id:
        return ActorRole.REQUESTER
    raise PermissionDenied("You can only manage your own bookings")
