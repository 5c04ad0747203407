"""
intervals.py
------------
Minute-of-day time arithmetic shared by the whole scheduling engine.

Every time of day inside the engine is an int: minutes since midnight in the
salon time zone (settings.TIME_ZONE). "HH:MM" strings and datetime.time values
are converted once, at the boundary, with the helpers below.

Overlap rule (half-open windows [start, end)):
    a.start < b.end AND a.end > b.start
Touching windows do not overlap: a booking ending at 10:00 and another
starting at 10:00 are both allowed.
"""

from datetime import datetime, time, timedelta
from typing import NamedTuple, Optional

from django.utils import timezone

MINUTES_PER_DAY = 24 * 60


class Interval(NamedTuple):
    start: int
    end: int

    @classmethod
    def of(cls, start: int, duration: int) -> "Interval":
        return cls(start, start + duration)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self):
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and a.end > b.start


def parse_hhmm(value: str) -> int:
    """
    Parse 'HH:MM' into minutes since midnight.
    Raises ValueError on anything else ('9:5', '24:00', '10:75', '').
    """
    value = (value or "").strip()
    h, sep, m = value.partition(":")
    if not sep or not h.isdigit() or not m.isdigit() or len(m) != 2 or len(h) > 2:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM")
    hours, minutes = int(h), int(m)
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def time_of(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def clip_to_day(start_dt: datetime, end_dt: datetime, day) -> Optional[Interval]:
    """
    Project an aware datetime range onto one calendar day (salon time zone).
    Returns None when the range does not touch the day. A range running past
    midnight is clipped to MINUTES_PER_DAY.
    """
    tz = timezone.get_current_timezone()
    day_start = timezone.make_aware(datetime.combine(day, time.min), tz)
    day_end = day_start + timedelta(days=1)

    start = timezone.localtime(start_dt, tz) if timezone.is_aware(start_dt) else timezone.make_aware(start_dt, tz)
    end = timezone.localtime(end_dt, tz) if timezone.is_aware(end_dt) else timezone.make_aware(end_dt, tz)

    if start >= day_end or end <= day_start:
        return None

    lo = 0 if start <= day_start else int((start - day_start).total_seconds() // 60)
    hi = MINUTES_PER_DAY if end >= day_end else -(-int((end - day_start).total_seconds()) // 60)
    if hi <= lo:
        return None
    return Interval(lo, hi)
