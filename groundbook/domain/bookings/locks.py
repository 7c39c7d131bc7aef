"""
Per (ground, date) serialization of slot claims

Two layers, both held from the conflict check until the claiming write commits:

1. A process-local ``threading.Lock`` per key, so threads of one worker never
   interleave check and write.
2. A ``SELECT ... FOR UPDATE`` on the key's ``ground_day_locks`` row, so
   separate worker processes on PostgreSQL queue behind each other. SQLite
   has no row locks but serializes writers for the whole database.

The partial unique index on bookings is the last line behind both.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import date

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ...models import GroundDayLock, generate_uuid

logger = logging.getLogger(__name__)

# Entries vanish once no claim holds or waits on the lock
_key_locks = weakref.WeakValueDictionary()  # (ground_id, date) -> threading.Lock
_registry_lock = threading.Lock()


def _process_lock(ground_id: str, booking_date: date) -> threading.Lock:
    key = (ground_id, booking_date)
    with _registry_lock:
        lock = _key_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _key_locks[key] = lock
        return lock


def _insert_lock_row(db: Session, ground_id: str, booking_date: date) -> None:
    values = {"id": generate_uuid(), "ground_id": ground_id, "booking_date": booking_date}
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        stmt = postgresql.insert(GroundDayLock).values(**values).on_conflict_do_nothing(
            index_elements=["ground_id", "booking_date"]
        )
    elif dialect == "sqlite":
        stmt = sqlite.insert(GroundDayLock).values(**values).on_conflict_do_nothing(
            index_elements=["ground_id", "booking_date"]
        )
    else:
        existing = db.execute(
            select(GroundDayLock.id).where(
                GroundDayLock.ground_id == ground_id,
                GroundDayLock.booking_date == booking_date,
            )
        ).first()
        if existing:
            return
        db.add(GroundDayLock(**values))
        db.flush()
        return

    db.execute(stmt)


def acquire_row_lock(db: Session, ground_id: str, booking_date: date) -> None:
    """Lock the (ground, date) row for the rest of the current transaction"""
    _insert_lock_row(db, ground_id, booking_date)
    db.execute(
        select(GroundDayLock.id)
        .where(
            GroundDayLock.ground_id == ground_id,
            GroundDayLock.booking_date == booking_date,
        )
        .with_for_update()
    ).first()


@contextmanager
def ground_day_guard(db: Session, ground_id: str, booking_date: date):
    """
    Serialize "check conflict, then write" for one ground and date.

    The caller must commit before leaving the block. Any exception raised
    inside rolls the session back before propagating.
    """
    lock = _process_lock(ground_id, booking_date)
    with lock:
        try:
            acquire_row_lock(db, ground_id, booking_date)
            yield
        except Exception:
            db.rollback()
            raise
