import os

# Settings are read at import time, so they must be in place before groundbook loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECURITY_HEADERS_ENABLED"] = "false"
os.environ.pop("RESEND_API_KEY", None)

from datetime import datetime, time, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from groundbook.database import Base, build_engine  # noqa: E402
from groundbook.domain.bookings.service import BookingService  # noqa: E402
from groundbook.models import Ground, Profile, UserRole  # noqa: E402
from groundbook.services.notification_service import NotificationEmitter  # noqa: E402
from groundbook.shared.actor import Actor  # noqa: E402

# 08:00 at the venue; every test runs against this instant unless it moves the clock
NOW = datetime(2030, 6, 15, 8, 0)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

REQUESTER = Actor(id="user-1", email="player@example.com", name="Player One")
OTHER = Actor(id="user-2")
ADMIN = Actor(id="admin-1", is_admin=True)


def t(value: str) -> time:
    return time.fromisoformat(value)


def slots(*starts: str) -> list:
    """30-minute slot selections starting at each given HH:MM"""
    selection = []
    for start in starts:
        begin = datetime.combine(TODAY, t(start))
        selection.append((begin.time(), (begin + timedelta(minutes=30)).time()))
    return selection


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingSink:
    name = "recording"

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def types(self) -> list:
        return [e.event_type.value for e in self.events]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def emitter(sink):
    return NotificationEmitter([sink])


@pytest.fixture
def service(db, emitter, clock):
    return BookingService(db, emitter=emitter, clock=clock)


@pytest.fixture
def day_ground(db):
    ground = Ground(name="Day Ground", category="day", location="North Field")
    db.add(ground)
    db.add(Profile(id=REQUESTER.id, email=REQUESTER.email, full_name=REQUESTER.name))
    db.add(UserRole(user_id=ADMIN.id, role="admin"))
    db.commit()
    return ground


@pytest.fixture
def night_ground(db):
    ground = Ground(name="Night Ground", category="night")
    db.add(ground)
    db.commit()
    return ground
