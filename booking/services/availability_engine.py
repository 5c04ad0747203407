"""
availability_engine.py
----------------------
Computes a stylist's bookable windows for one date by intersecting:
1) working days/hours,
2) full-day and partial leave,
3) recurring breaks, and
4) existing non-cancelled appointments (double-booking prevention).

Every comparison uses the half-open overlap rule from intervals.py, so
back-to-back appointments (one ends at 10:00, the next starts at 10:00) are
allowed everywhere.

When several constraints block one candidate, the reported reason follows the
priority: On leave > Break > Booked.

The front-end queries at the bottom (qualified stylists with their grids, the
consolidated "no preference" grid) hide today's starts that fall before
now + BOOKING_LEAD_MINUTES.
"""

from dataclasses import dataclass
from typing import List, Optional

from .constraint_sources import ConstraintSources, StaffDay
from .intervals import Interval, format_hhmm
from .qualification import qualified_staff
from .slot_utils import consolidate_grids, generate_slot_starts, trim_past_slots

REASON_NOT_WORKING = "Not working"
REASON_UNAVAILABLE = "Unavailable"
REASON_ON_LEAVE = "On leave"
REASON_BREAK = "Break"
REASON_BOOKED = "Booked"
REASON_OUTSIDE_HOURS = "Outside hours"


@dataclass(frozen=True)
class TimeSlot:
    start: int
    available: bool
    reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def time(self) -> str:
        return format_hhmm(self.start)

    def as_dict(self) -> dict:
        data = {"time": self.time, "available": self.available}
        if self.reason:
            data["reason"] = self.reason
        if self.detail:
            data["detail"] = self.detail
        return data


@dataclass(frozen=True)
class Blocker:
    reason: str
    detail: Optional[str] = None


class AvailabilityEngine:
    def __init__(self, sources: Optional[ConstraintSources] = None):
        self.sources = sources or ConstraintSources()

    # -------------------- single window --------------------
    def day_blocker(self, day: StaffDay) -> Optional[Blocker]:
        """Reason the whole day is blocked, if it is."""
        if not day.working:
            return Blocker(REASON_NOT_WORKING)
        if day.emergency_unavailable:
            return Blocker(REASON_UNAVAILABLE)
        leave = day.full_day_leave
        if leave is not None:
            return Blocker(REASON_ON_LEAVE, leave.label)
        return None

    def interval_blocker(self, day: StaffDay, window: Interval) -> Optional[Blocker]:
        """
        Test one window against leave sub-ranges, breaks and appointments,
        in that priority order.
        """
        for leave in day.leave:
            if window.overlaps(leave.interval):
                return Blocker(REASON_ON_LEAVE, leave.label)
        for brk in day.breaks:
            if window.overlaps(brk):
                return Blocker(REASON_BREAK)
        for booked in day.appointments:
            if window.overlaps(booked):
                return Blocker(REASON_BOOKED)
        return None

    def window_conflict(self, day: StaffDay, window: Interval) -> Optional[Blocker]:
        """
        Full check for exactly one requested window, as used at booking time:
        whole-day blocks, then working hours, then the interval constraints.
        """
        blocker = self.day_blocker(day)
        if blocker is not None:
            return blocker
        if not day.hours.contains(window):
            return Blocker(REASON_OUTSIDE_HOURS)
        return self.interval_blocker(day, window)

    def is_window_free(self, staff, date, start: int, duration: int) -> bool:
        day = self.sources.load_day(staff, date)
        return self.window_conflict(day, Interval.of(start, duration)) is None

    # -------------------- whole day --------------------
    def slots_for_day(self, day: StaffDay, duration: int, slot_step: int) -> List[TimeSlot]:
        starts = generate_slot_starts(day.hours, duration, slot_step)
        blocker = self.day_blocker(day)
        if blocker is not None:
            return [TimeSlot(s, False, blocker.reason, blocker.detail) for s in starts]

        slots = []
        for start in starts:
            found = self.interval_blocker(day, Interval.of(start, duration))
            if found is None:
                slots.append(TimeSlot(start, True))
            else:
                slots.append(TimeSlot(start, False, found.reason, found.detail))
        return slots

    def get_available_slots(self, staff, date, duration: int, slot_step: Optional[int] = None) -> List[TimeSlot]:
        """
        Ordered candidate starts for `staff` on `date`, each marked available or
        blocked with a reason. slot_step defaults to the salon SLOT_INTERVAL.
        """
        if duration <= 0:
            raise ValueError("duration must be positive")
        step = slot_step or self.sources.settings.slot_interval
        day = self.sources.load_day(staff, date)
        return self.slots_for_day(day, duration, step)

    # -------------------- front-end queries --------------------
    def _bookable_slots(self, staff, date, duration: int, now=None) -> List[TimeSlot]:
        slots = self.get_available_slots(staff, date, duration)
        return trim_past_slots(slots, date, now=now, lead_minutes=self.sources.settings.booking_lead_minutes)

    def get_qualified_staff_with_slots(self, service, date, duration: Optional[int] = None, branch=None, now=None):
        """
        Qualified stylists for `service` on `date` with their slot grids.
        Only stylists with at least one bookable slot are returned, ordered by id.
        """
        duration = duration or service.duration_minutes
        results = []
        for staff in qualified_staff(service, branch=branch):
            slots = self._bookable_slots(staff, date, duration, now=now)
            if not any(slot.available for slot in slots):
                continue
            results.append({"staff": staff, "slots": slots, "skills": list(staff.skills.all())})
        return results

    def get_consolidated_slots(self, service, date, branch=None, now=None):
        """One "no preference" grid merged across every qualified stylist."""
        grids = [
            self._bookable_slots(staff, date, service.duration_minutes, now=now)
            for staff in qualified_staff(service, branch=branch)
        ]
        return consolidate_grids(grids)
