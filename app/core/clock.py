"""Time source for scheduling logic."""

from datetime import datetime, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

from app.config import settings


class Clock(Protocol):
    """Anything that can tell the current clinic time."""

    def now(self) -> datetime:
        """Return the current timezone-aware instant."""
        ...


class SystemClock:
    """Wall clock in the clinic timezone."""

    def __init__(self, tz: tzinfo):
        """Initialize with the clinic timezone."""
        self.tz = tz

    def now(self) -> datetime:
        """Return the current instant in the clinic timezone."""
        return datetime.now(self.tz)


def clinic_timezone() -> ZoneInfo:
    """Get the configured clinic timezone."""
    return ZoneInfo(settings.clinic_timezone)


def get_clock() -> Clock:
    """Dependency returning the system clock."""
    return SystemClock(clinic_timezone())
