"""
Calendar helpers for operating hours and ticket lifetimes.

All functions are pure: they take the instant to evaluate instead of
reading the system clock. Times are local wall-clock (naive) datetimes,
matching how opening hours are written on the workshop door.
"""

from datetime import datetime, time, timedelta
from typing import Callable, Optional

from workshop_queue.schemas.queue_schema import DaySchedule, OperatingHours, Weekday

Clock = Callable[[], datetime]

_WEEKDAYS = list(Weekday)


def weekday_of(moment: datetime) -> Weekday:
    return _WEEKDAYS[moment.weekday()]


def parse_hhmm(value: str) -> time:
    """Parse an "HH:MM" string. Raises ValueError on anything else."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def is_within_schedule(moment: datetime, schedule: Optional[DaySchedule]) -> bool:
    """True iff the day is enabled and ``open <= moment.time < close``."""
    if schedule is None or not schedule.enabled:
        return False
    current = moment.time().replace(second=0, microsecond=0)
    return parse_hhmm(schedule.open) <= current < parse_hhmm(schedule.close)


def is_open_at(moment: datetime, hours: OperatingHours) -> bool:
    return is_within_schedule(moment, hours.get(weekday_of(moment)))


def add_minutes(moment: datetime, minutes: int) -> datetime:
    return moment + timedelta(minutes=minutes)


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).total_seconds() / 60


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test: touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def default_operating_hours(open_time: str, close_time: str) -> OperatingHours:
    """Monday to Saturday open, Sunday closed."""
    return {
        day: DaySchedule(open=open_time, close=close_time, enabled=day != Weekday.SUNDAY)
        for day in Weekday
    }
