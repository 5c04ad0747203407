import random
from datetime import datetime, time, timedelta

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from booking.models import Appointment
from booking.services.availability_engine import (
    REASON_BOOKED,
    REASON_BREAK,
    REASON_NOT_WORKING,
    REASON_ON_LEAVE,
    REASON_OUTSIDE_HOURS,
    REASON_UNAVAILABLE,
    AvailabilityEngine,
)
from booking.services.constraint_sources import LeaveWindow, StaffDay
from booking.services.intervals import Interval, parse_hhmm
from configmgr.models import SystemSetting
from staff.models import LeaveRecord

from .factories import (
    MONDAY,
    SUNDAY,
    book,
    make_break,
    make_service,
    make_stylist,
    next_weekday,
)


def slot_map(slots):
    return {s.time: s for s in slots}


class AvailabilityEngineTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.cut = make_service("Haircut", duration=30)
        self.colour = make_service("Colour", duration=60)
        self.stylist = make_stylist(
            "Sam", skills=[self.cut, self.colour], working_days=range(0, 5), hours=("09:00", "17:00")
        )
        self.monday = next_weekday(MONDAY)

    def leave_at(self, start, end, kind=LeaveRecord.HALF_DAY):
        tz = timezone.get_current_timezone()
        return LeaveRecord.objects.create(
            staff=self.stylist,
            kind=kind,
            start_at=timezone.make_aware(datetime.combine(self.monday, time.fromisoformat(start)), tz),
            end_at=timezone.make_aware(datetime.combine(self.monday, time.fromisoformat(end)), tz),
        )

    def test_free_day_offers_whole_grid(self):
        """Mon-Fri 09:00-17:00, no constraints: every 30-minute start is free."""
        slots = self.engine.get_available_slots(self.stylist, self.monday, 30)
        self.assertEqual(len(slots), 16)
        self.assertEqual(slots[0].time, "09:00")
        self.assertEqual(slots[-1].time, "16:30")
        self.assertTrue(all(s.available for s in slots))

    def test_last_slot_must_fit_working_hours(self):
        slots = self.engine.get_available_slots(self.stylist, self.monday, 60)
        self.assertEqual(slots[-1].time, "16:00")

    def test_back_to_back_is_allowed(self):
        """An appointment ending at 10:00 does not block a 10:00 start."""
        book(self.stylist, self.colour, self.monday, "09:00")
        slots = slot_map(self.engine.get_available_slots(self.stylist, self.monday, 30))
        self.assertFalse(slots["09:00"].available)
        self.assertEqual(slots["09:30"].reason, REASON_BOOKED)
        self.assertTrue(slots["10:00"].available)
        self.assertTrue(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("10:00"), 45))

    def test_overlapping_request_is_blocked(self):
        book(self.stylist, self.colour, self.monday, "10:00")
        self.assertFalse(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("10:30"), 30))
        self.assertFalse(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("09:30"), 60))
        self.assertTrue(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("09:30"), 30))

    def test_cancelled_appointment_frees_window(self):
        book(self.stylist, self.colour, self.monday, "10:00", status=Appointment.CANCELLED)
        self.assertTrue(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("10:00"), 60))

    def test_daily_break_blocks_window(self):
        make_break(self.stylist, "13:00", "14:00")
        slots = slot_map(self.engine.get_available_slots(self.stylist, self.monday, 30))
        self.assertTrue(slots["12:30"].available)
        self.assertEqual(slots["13:00"].reason, REASON_BREAK)
        self.assertEqual(slots["13:30"].reason, REASON_BREAK)
        self.assertTrue(slots["14:00"].available)

    def test_weekday_break_only_applies_on_that_day(self):
        make_break(self.stylist, "13:00", "14:00", day_of_week=(MONDAY + 1))
        self.assertTrue(self.engine.is_window_free(self.stylist, self.monday, parse_hhmm("13:00"), 30))

    def test_full_day_leave_blocks_every_time(self):
        LeaveRecord.objects.create(
            staff=self.stylist, kind=LeaveRecord.HOLIDAY, start_date=self.monday, end_date=self.monday
        )
        make_break(self.stylist, "13:00", "14:00")
        slots = self.engine.get_available_slots(self.stylist, self.monday, 30)
        self.assertTrue(slots)
        for slot in slots:
            self.assertFalse(slot.available)
            self.assertEqual(slot.reason, REASON_ON_LEAVE)
            self.assertEqual(slot.detail, "Holiday")
        for start in range(0, 24 * 60 - 30, 30):
            self.assertFalse(self.engine.is_window_free(self.stylist, self.monday, start, 30))

    def test_multi_day_leave_covers_dates_in_range(self):
        LeaveRecord.objects.create(
            staff=self.stylist,
            kind=LeaveRecord.SICK,
            start_date=self.monday - timedelta(days=2),
            end_date=self.monday + timedelta(days=1),
        )
        slots = self.engine.get_available_slots(self.stylist, self.monday, 30)
        self.assertEqual({s.reason for s in slots}, {REASON_ON_LEAVE})

    def test_partial_leave_blocks_sub_range(self):
        self.leave_at("13:00", "18:00")
        slots = slot_map(self.engine.get_available_slots(self.stylist, self.monday, 30))
        self.assertTrue(slots["12:30"].available)
        self.assertEqual(slots["13:00"].reason, REASON_ON_LEAVE)
        self.assertEqual(slots["13:00"].detail, "Half Day Leave")
        self.assertEqual(slots["16:30"].reason, REASON_ON_LEAVE)

    def test_reason_priority_leave_then_break_then_booked(self):
        make_break(self.stylist, "12:00", "13:00")
        book(self.stylist, self.colour, self.monday, "12:00")
        self.leave_at("12:30", "13:00")
        slots = slot_map(self.engine.get_available_slots(self.stylist, self.monday, 30))
        self.assertEqual(slots["12:00"].reason, REASON_BREAK)
        self.assertEqual(slots["12:30"].reason, REASON_ON_LEAVE)

    def test_non_working_day(self):
        sunday = next_weekday(SUNDAY)
        slots = self.engine.get_available_slots(self.stylist, sunday, 30)
        self.assertTrue(slots)
        self.assertEqual({s.reason for s in slots}, {REASON_NOT_WORKING})

    def test_emergency_unavailable(self):
        self.stylist.is_emergency_unavailable = True
        self.stylist.save()
        slots = self.engine.get_available_slots(self.stylist, self.monday, 30)
        self.assertEqual({s.reason for s in slots}, {REASON_UNAVAILABLE})

    def test_window_outside_hours(self):
        day = self.engine.sources.load_day(self.stylist, self.monday)
        blocker = self.engine.window_conflict(day, Interval.of(parse_hhmm("16:45"), 30))
        self.assertEqual(blocker.reason, REASON_OUTSIDE_HOURS)

    def test_stylist_without_own_hours_uses_business_hours(self):
        other = make_stylist("Pat", skills=[self.cut])
        slots = self.engine.get_available_slots(other, self.monday, 30)
        self.assertEqual(slots[0].time, "09:00")
        self.assertEqual(slots[-1].time, "17:30")

    def test_slot_interval_setting(self):
        SystemSetting.objects.create(key="SLOT_INTERVAL", value="15")
        slots = AvailabilityEngine().get_available_slots(self.stylist, self.monday, 30)
        self.assertEqual(slots[1].time, "09:15")
        self.assertEqual(len(slots), 31)

    def test_explicit_step_overrides_setting(self):
        slots = self.engine.get_available_slots(self.stylist, self.monday, 30, slot_step=60)
        self.assertEqual([s.time for s in slots][:3], ["09:00", "10:00", "11:00"])

    def test_rejects_non_positive_duration(self):
        with self.assertRaises(ValueError):
            self.engine.get_available_slots(self.stylist, self.monday, 0)


class FrontEndQueryTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.cut = make_service("Haircut", duration=60)
        self.monday = next_weekday(MONDAY)
        self.ann = make_stylist("Ann", skills=[self.cut], hours=("09:00", "11:00"))
        self.ben = make_stylist("Ben", skills=[self.cut], hours=("09:00", "11:00"))
        self.cal = make_stylist("Cal", skills=[], hours=("09:00", "11:00"))

    def test_qualified_staff_with_slots(self):
        book(self.ann, self.cut, self.monday, "09:00")
        book(self.ann, self.cut, self.monday, "10:00")
        results = self.engine.get_qualified_staff_with_slots(self.cut, self.monday)
        self.assertEqual([r["staff"] for r in results], [self.ben])
        self.assertEqual([s.time for s in results[0]["slots"]], ["09:00", "09:30", "10:00"])
        self.assertEqual(results[0]["skills"], [self.cut])

    def test_qualified_staff_with_custom_duration(self):
        results = self.engine.get_qualified_staff_with_slots(self.cut, self.monday, duration=120)
        self.assertEqual(len(results), 2)
        self.assertEqual([s.time for s in results[0]["slots"]], ["09:00"])

    def test_branch_filter(self):
        self.ben.branch = "uptown"
        self.ben.save()
        results = self.engine.get_qualified_staff_with_slots(self.cut, self.monday, branch="uptown")
        self.assertEqual([r["staff"] for r in results], [self.ben])

    def test_consolidated_grid(self):
        book(self.ann, self.cut, self.monday, "09:00")
        grid = {row["time"]: row for row in self.engine.get_consolidated_slots(self.cut, self.monday)}
        self.assertEqual(grid["09:00"]["available_staff_count"], 1)
        self.assertEqual(grid["10:00"]["available_staff_count"], 2)
        self.assertTrue(grid["09:00"]["available"])


class AvailabilityPropertyTests(SimpleTestCase):
    """
    Randomised sweep over pure StaffDay snapshots: an available slot never
    overlaps a non-cancelled appointment, a break or a leave window, and always
    fits the working hours.
    """

    ITERATIONS = 400

    def random_intervals(self, rng, count, lo, hi):
        intervals = []
        for _ in range(count):
            start = rng.randrange(lo, hi - 5, 5)
            end = min(hi, start + rng.choice([15, 30, 45, 60, 90, 120]))
            intervals.append(Interval(start, end))
        return intervals

    def test_available_slots_never_overlap_constraints(self):
        rng = random.Random(20240611)
        engine = AvailabilityEngine(sources=object())
        for _ in range(self.ITERATIONS):
            open_ = rng.choice([420, 480, 540, 600])
            close = open_ + rng.choice([240, 360, 480, 600])
            appointments = self.random_intervals(rng, rng.randint(0, 6), open_, close)
            breaks = self.random_intervals(rng, rng.randint(0, 2), open_, close)
            leave = [
                LeaveWindow(interval, LeaveRecord.HALF_DAY, "Half Day Leave")
                for interval in self.random_intervals(rng, rng.randint(0, 1), open_, close)
            ]
            day = StaffDay(
                staff_id=1,
                date=None,
                working=True,
                emergency_unavailable=False,
                hours=Interval(open_, close),
                breaks=tuple(breaks),
                leave=tuple(leave),
                appointments=tuple(appointments),
            )
            duration = rng.choice([15, 30, 45, 60, 90])
            step = rng.choice([10, 15, 30])

            for slot in engine.slots_for_day(day, duration, step):
                window = Interval.of(slot.start, duration)
                self.assertTrue(day.hours.contains(window))
                blocked_by = (
                    [REASON_ON_LEAVE] * any(window.overlaps(w.interval) for w in leave)
                    + [REASON_BREAK] * any(window.overlaps(b) for b in breaks)
                    + [REASON_BOOKED] * any(window.overlaps(a) for a in appointments)
                )
                if slot.available:
                    self.assertEqual(blocked_by, [], (day, slot))
                else:
                    self.assertEqual(slot.reason, blocked_by[0], (day, slot))
