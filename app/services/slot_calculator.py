"""Bookable time-slot computation.

Everything here is pure: callers pass in the occupied times and the current
instant, nothing is read from the database or the system clock.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo

from app.config import settings


def parse_slot_time(value: str) -> time:
    """
    Parse an ``HH:MM`` slot string.

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    hours, sep, minutes = value.partition(":")
    if not sep or len(hours) != 2 or len(minutes) != 2:
        raise ValueError(f"Invalid time format: {value!r}, expected HH:MM")
    return time(int(hours), int(minutes))


def format_slot_time(value: time) -> str:
    """Format a time as an ``HH:MM`` slot string."""
    return f"{value.hour:02d}:{value.minute:02d}"


def slot_instant(slot_date: date, slot_time: str, tz: tzinfo | None) -> datetime:
    """Combine a calendar date and a slot string into one instant."""
    return datetime.combine(slot_date, parse_slot_time(slot_time), tzinfo=tz)


@dataclass(frozen=True)
class ClinicHours:
    """Operating window and slot spacing of the clinic."""

    opening_hour: int = 9
    closing_hour: int = 17
    interval_minutes: int = 30

    def __post_init__(self) -> None:
        if self.closing_hour < self.opening_hour:
            raise ValueError("Closing hour must not be before opening hour")
        if self.interval_minutes <= 0 or 60 % self.interval_minutes:
            raise ValueError("Slot interval must evenly divide an hour")

    @classmethod
    def from_settings(cls) -> "ClinicHours":
        """Build from application settings."""
        return cls(
            opening_hour=settings.clinic_opening_hour,
            closing_hour=settings.clinic_closing_hour,
            interval_minutes=settings.slot_interval_minutes,
        )

    def slots(self) -> list[str]:
        """All slot marks from opening to closing hour, both inclusive."""
        start = self.opening_hour * 60
        end = self.closing_hour * 60
        return [
            format_slot_time(time(minute // 60, minute % 60))
            for minute in range(start, end + 1, self.interval_minutes)
        ]

    def is_valid_slot(self, value: str) -> bool:
        """Check that a time string is exactly one of the slot marks."""
        return value in self.slots()


def calculate_available_slots(
    target_date: date,
    booked_times: Iterable[str],
    now: datetime,
    hours: ClinicHours | None = None,
) -> list[str]:
    """
    Compute bookable slots for one doctor on one date.

    Args:
        target_date: Calendar date being booked
        booked_times: Times already held by pending or confirmed appointments
        now: Current instant, in the clinic timezone
        hours: Operating window, defaults to the configured one

    Returns:
        Free slot strings, earliest first
    """
    hours = hours or ClinicHours.from_settings()
    occupied = set(booked_times)
    available = [slot for slot in hours.slots() if slot not in occupied]

    if target_date == now.date():
        available = [
            slot
            for slot in available
            if slot_instant(target_date, slot, now.tzinfo) > now
        ]

    return available
