# backend/lib/energy_plan_core/processor.py
"""
Time windows applied to readings before cost estimation.

Every window is a pure filter: it returns a new list and never touches the
readings it was given. `now` defaults to the current moment in the system
time zone; tests pass it explicitly.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .models import ElectricityReading

LAST_WEEK = timedelta(days=7)

DAY_LABELS = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    return as_aware(now)


def as_aware(ts: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def filter_last_week(readings: Iterable[ElectricityReading],
                     now: Optional[datetime] = None) -> List[ElectricityReading]:
    """
    Keep readings taken within the last seven days (inclusive of the
    boundary instant).
    """
    cutoff = _now(now) - LAST_WEEK
    return [r for r in readings if as_aware(r.timestamp) >= cutoff]


def filter_day_of_week(readings: Iterable[ElectricityReading],
                       now: Optional[datetime] = None) -> List[ElectricityReading]:
    """
    Keep readings whose calendar weekday matches today's weekday.

    Readings are matched against the weekday of `now`, not bucketed by their
    own weekday, so a reading from the same weekday one week earlier is kept
    as well. Weekdays are computed in the time zone of `now`.
    """
    current = _now(now)
    tz = current.tzinfo
    return [r for r in readings
            if as_aware(r.timestamp).astimezone(tz).weekday() == current.weekday()]


def day_of_week_label(now: Optional[datetime] = None) -> str:
    return DAY_LABELS[_now(now).weekday()]
