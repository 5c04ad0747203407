"""
dispatcher.py
-------------
Picks a stylist automatically for "no preference" bookings.

Pipeline (each step narrows the candidate list):
1) qualified for the service           (stage: not_qualified)
2) works on the date's weekday         (stage: not_working)
3) no full-day leave on the date       (stage: on_leave)
4) the exact requested window is free  (stage: no_free_window)
5) rank by the date's appointment count, ascending (load balancing);
   equal counts are ordered by ascending staff id.

If a step leaves nobody, NoAvailableSlotError records that step's stage.
The dispatcher only reads, so concurrent calls cannot affect each other.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .availability_engine import AvailabilityEngine
from .errors import EliminationStage, NoAvailableSlotError, NoQualifiedStaffError
from .intervals import Interval, format_hhmm
from .qualification import qualified_staff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    staff: object
    load: int

    @property
    def sort_key(self):
        return (self.load, self.staff.pk)


class Dispatcher:
    def __init__(self, engine: Optional[AvailabilityEngine] = None):
        self.engine = engine or AvailabilityEngine()

    @property
    def sources(self):
        return self.engine.sources

    def rank(self, service, date, start: int, duration: int, branch=None, exclude=()) -> List[Candidate]:
        """
        All stylists who could take [start, start+duration) on `date`, best first.
        `exclude` holds staff ids that must not be offered (e.g. a lost race).
        """
        excluded = set(exclude)
        staff_list = [s for s in qualified_staff(service, branch=branch) if s.pk not in excluded]
        if not staff_list:
            raise NoQualifiedStaffError()

        staff_list = [s for s in staff_list if self.sources.works_on(s, date)]
        if not staff_list:
            raise NoAvailableSlotError(EliminationStage.NOT_WORKING)

        days = {s.pk: self.sources.load_day(s, date) for s in staff_list}
        staff_list = [s for s in staff_list if days[s.pk].full_day_leave is None]
        if not staff_list:
            raise NoAvailableSlotError(EliminationStage.ON_LEAVE)

        window = Interval.of(start, duration)
        staff_list = [s for s in staff_list if self.engine.window_conflict(days[s.pk], window) is None]
        if not staff_list:
            raise NoAvailableSlotError(EliminationStage.NO_FREE_WINDOW)

        # StaffDay.appointments holds exactly the date's non-cancelled appointments
        candidates = [Candidate(s, len(days[s.pk].appointments)) for s in staff_list]
        candidates.sort(key=lambda c: c.sort_key)
        return candidates

    def select(self, service, date, start: int, duration: int, branch=None, exclude=()):
        candidates = self.rank(service, date, start, duration, branch=branch, exclude=exclude)
        chosen = candidates[0]
        logger.info(
            "Dispatcher picked staff #%s (load %s) for service #%s on %s at %s; %s candidate(s)",
            chosen.staff.pk, chosen.load, service.pk, date, format_hhmm(start), len(candidates),
        )
        return chosen.staff
