"""
constraint_sources.py
---------------------
Read-only accessors for everything that limits when a stylist can be booked.

Each accessor is scoped to one stylist and one date and has no side effects,
so calls for different stylists/dates are independent of each other:
- working_hours()        own hours, or the salon's BUSINESS_OPEN/CLOSE
- breaks()               recurring breaks that apply on the date's weekday
- leave_windows()        leave overlapping the date, projected to minutes
- appointment_windows()  non-cancelled appointments on the date
- appointment_count()    the date's non-cancelled appointment count (load)

load_day() reads all of them once and returns an immutable StaffDay snapshot
that the availability engine evaluates without further queries.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from django.db.models import Q

from configmgr.salon_settings import get_salon_settings
from staff.models import Break, LeaveRecord
from ..models import Appointment
from .intervals import MINUTES_PER_DAY, Interval, clip_to_day, minutes_of


@dataclass(frozen=True)
class LeaveWindow:
    interval: Interval
    kind: str
    label: str

    @property
    def full_day(self) -> bool:
        return self.interval.start == 0 and self.interval.end == MINUTES_PER_DAY


@dataclass(frozen=True)
class StaffDay:
    """Everything the availability engine needs for one stylist on one date."""
    staff_id: int
    date: object
    working: bool
    emergency_unavailable: bool
    hours: Interval
    breaks: Tuple[Interval, ...] = ()
    leave: Tuple[LeaveWindow, ...] = ()
    appointments: Tuple[Interval, ...] = ()

    @property
    def full_day_leave(self) -> Optional[LeaveWindow]:
        for window in self.leave:
            if window.full_day:
                return window
        return None


class ConstraintSources:
    def __init__(self, salon_settings=None):
        self._settings = salon_settings

    @property
    def settings(self):
        if self._settings is None:
            self._settings = get_salon_settings()
        return self._settings

    def works_on(self, staff, day) -> bool:
        return staff.works_on(day)

    def working_hours(self, staff, day) -> Interval:
        if staff.work_start is not None and staff.work_end is not None:
            return Interval(minutes_of(staff.work_start), minutes_of(staff.work_end))
        return Interval(self.settings.business_open, self.settings.business_close)

    def breaks(self, staff, day):
        qs = Break.objects.filter(staff=staff).filter(
            Q(day_of_week__isnull=True) | Q(day_of_week=day.weekday())
        )
        return [Interval(minutes_of(b.start_time), minutes_of(b.end_time)) for b in qs]

    def leave_windows(self, staff, day):
        qs = LeaveRecord.objects.filter(staff=staff).filter(
            Q(start_date__lte=day, end_date__gte=day)
            | Q(start_at__isnull=False, start_at__date__lte=day, end_at__date__gte=day)
        )
        windows = []
        for record in qs:
            if record.is_full_day:
                interval = Interval(0, MINUTES_PER_DAY)
            else:
                interval = clip_to_day(record.start_at, record.end_at, day)
                if interval is None:
                    continue
            windows.append(LeaveWindow(interval, record.kind, record.get_kind_display()))
        return windows

    def _active_appointments(self, staff, day):
        return Appointment.objects.filter(staff=staff, date=day).exclude(status=Appointment.CANCELLED)

    def appointment_windows(self, staff, day):
        return [
            Interval.of(minutes_of(start), duration)
            for start, duration in self._active_appointments(staff, day)
            .order_by("start_time")
            .values_list("start_time", "duration_minutes")
        ]

    def appointment_count(self, staff, day) -> int:
        return self._active_appointments(staff, day).count()

    def load_day(self, staff, day) -> StaffDay:
        return StaffDay(
            staff_id=staff.pk,
            date=day,
            working=self.works_on(staff, day),
            emergency_unavailable=staff.is_emergency_unavailable,
            hours=self.working_hours(staff, day),
            breaks=tuple(self.breaks(staff, day)),
            leave=tuple(self.leave_windows(staff, day)),
            appointments=tuple(self.appointment_windows(staff, day)),
        )
