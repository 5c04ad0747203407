"""
slot_utils.py
-------------
Helpers that shape availability into the fixed-step grid shown to callers:
- parse a 'YYYY-MM-DD' string into a date (boundary parsing),
- enumerate candidate starts inside working hours,
- hide today's starts that are already (almost) in the past,
- merge several stylists' grids into one "no preference" grid.
"""

from datetime import date as date_cls
from typing import Dict, Iterable, List

from django.utils import timezone
from django.utils.dateparse import parse_date

from .intervals import Interval, format_hhmm, minutes_of


def date_to_day(date_str: str) -> date_cls:
    """
    Convert 'YYYY-MM-DD' (or an ISO datetime, trimmed to its date part) to a date.
    Raises ValueError on anything else.
    """
    date_str = (date_str or "").strip()
    if "T" in date_str:
        date_str = date_str.split("T", 1)[0]
    elif " " in date_str:
        date_str = date_str.split(" ", 1)[0]
    try:
        day = parse_date(date_str)
    except ValueError:
        day = None
    if day is None:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.")
    return day


def generate_slot_starts(hours: Interval, duration: int, step: int) -> List[int]:
    """
    Candidate start minutes stepping by `step` from the start of working hours,
    keeping only those where start + duration <= end of working hours.
    """
    if step <= 0:
        raise ValueError("slot step must be positive")
    starts = []
    current = hours.start
    while current + duration <= hours.end:
        starts.append(current)
        current += step
    return starts


def earliest_bookable_minute(day, now=None, lead_minutes: int = 0):
    """
    First minute of `day` that may still be offered, or None when `day` is not
    today. Past days return a value past midnight so nothing is offered.
    """
    now = timezone.localtime(now or timezone.now())
    today = now.date()
    if day > today:
        return None
    if day < today:
        return 24 * 60
    return minutes_of(now.time()) + lead_minutes


def trim_past_slots(slots, day, now=None, lead_minutes: int = 0):
    """Drop slots on today's date that start earlier than now + lead_minutes."""
    cutoff = earliest_bookable_minute(day, now=now, lead_minutes=lead_minutes)
    if cutoff is None:
        return list(slots)
    return [s for s in slots if s.start >= cutoff]


def consolidate_grids(grids: Iterable[List]) -> List[Dict]:
    """
    Merge per-stylist slot grids into one grid for "no preference" bookings.
    A start is available when at least one stylist is free then.
    """
    counts: Dict[int, int] = {}
    for grid in grids:
        for slot in grid:
            counts.setdefault(slot.start, 0)
            if slot.available:
                counts[slot.start] += 1
    return [
        {
            "time": format_hhmm(start),
            "available": counts[start] > 0,
            "available_staff_count": counts[start],
        }
        for start in sorted(counts)
    ]


def slots_payload(slots) -> List[Dict]:
    return [s.as_dict() for s in slots]
