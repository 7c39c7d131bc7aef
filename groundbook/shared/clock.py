"""Venue wall clock"""

from datetime import datetime
from zoneinfo import ZoneInfo

from ..config import VENUE_TIMEZONE


def venue_now() -> datetime:
    """Current naive wall-clock time at the venue; booking dates and times use the same frame"""
    return datetime.now(ZoneInfo(VENUE_TIMEZONE)).replace(tzinfo=None)


def get_clock():
    """Dependency returning the clock callable, overridable in tests"""
    return venue_now
