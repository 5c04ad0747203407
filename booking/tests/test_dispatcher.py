from django.test import TestCase

from booking.models import Appointment
from booking.services.dispatcher import Dispatcher
from booking.services.errors import EliminationStage, NoAvailableSlotError, NoQualifiedStaffError
from booking.services.intervals import parse_hhmm
from booking.services.qualification import is_qualified, qualified_staff
from staff.models import LeaveRecord, StaffMember

from .factories import MONDAY, SUNDAY, book, make_break, make_service, make_stylist, next_weekday


class QualificationTests(TestCase):
    def setUp(self):
        self.cut = make_service("Haircut", duration=30)
        self.facial = make_service("Facial", duration=60)

    def test_eligibility_rules(self):
        ok = make_stylist("Ok", skills=[self.cut])
        unskilled = make_stylist("Unskilled", skills=[self.facial])
        inactive = make_stylist("Inactive", skills=[self.cut], is_active=False)
        emergency = make_stylist("Emergency", skills=[self.cut], is_emergency_unavailable=True)
        receptionist = make_stylist("Desk", skills=[self.cut], role=StaffMember.RECEPTIONIST)

        self.assertTrue(is_qualified(ok, self.cut))
        for staff in (unskilled, inactive, emergency, receptionist):
            with self.subTest(staff=staff.name):
                self.assertFalse(is_qualified(staff, self.cut))
        self.assertEqual(qualified_staff(self.cut), [ok])

    def test_ordered_by_id_and_idempotent(self):
        staff = [make_stylist(f"S{i}", skills=[self.cut, self.facial]) for i in range(4)]
        first = qualified_staff(self.cut)
        second = qualified_staff(self.cut)
        self.assertEqual(first, staff)
        self.assertEqual([s.pk for s in first], [s.pk for s in second])

    def test_branch_filter(self):
        make_stylist("Down", skills=[self.cut], branch="downtown")
        up = make_stylist("Up", skills=[self.cut], branch="uptown")
        self.assertEqual(qualified_staff(self.cut, branch="uptown"), [up])


class DispatcherTests(TestCase):
    def setUp(self):
        self.dispatcher = Dispatcher()
        self.cut = make_service("Haircut", duration=30)
        self.monday = next_weekday(MONDAY)

    def fill(self, staff, count):
        """Give `staff` `count` morning appointments on Monday."""
        for i in range(count):
            book(staff, self.cut, self.monday, f"{9 + i:02d}:00")

    def test_picks_least_loaded(self):
        """Loads [3, 1, 2] → the stylist with one appointment is chosen."""
        s1, s2, s3 = (make_stylist(n, skills=[self.cut]) for n in ("S1", "S2", "S3"))
        self.fill(s1, 3)
        self.fill(s2, 1)
        self.fill(s3, 2)
        chosen = self.dispatcher.select(self.cut, self.monday, parse_hhmm("15:00"), 30)
        self.assertEqual(chosen, s2)

        ranked = self.dispatcher.rank(self.cut, self.monday, parse_hhmm("15:00"), 30)
        self.assertEqual([c.staff for c in ranked], [s2, s3, s1])
        self.assertEqual([c.load for c in ranked], [1, 2, 3])

    def test_afternoon_request_goes_to_idle_stylist(self):
        s1 = make_stylist("S1", skills=[self.cut])
        s2 = make_stylist("S2", skills=[self.cut])
        self.fill(s1, 2)
        self.assertEqual(self.dispatcher.select(self.cut, self.monday, parse_hhmm("14:00"), 30), s2)

    def test_tie_broken_by_lowest_id(self):
        s1 = make_stylist("S1", skills=[self.cut])
        make_stylist("S2", skills=[self.cut])
        self.assertEqual(self.dispatcher.select(self.cut, self.monday, parse_hhmm("11:00"), 30), s1)

    def test_cancelled_appointments_do_not_count(self):
        s1 = make_stylist("S1", skills=[self.cut])
        s2 = make_stylist("S2", skills=[self.cut])
        book(s1, self.cut, self.monday, "09:00", status=Appointment.CANCELLED)
        book(s1, self.cut, self.monday, "10:00", status=Appointment.CANCELLED)
        book(s2, self.cut, self.monday, "09:00")
        self.assertEqual(self.dispatcher.select(self.cut, self.monday, parse_hhmm("14:00"), 30), s1)

    def test_busy_stylist_is_skipped(self):
        s1 = make_stylist("S1", skills=[self.cut])
        s2 = make_stylist("S2", skills=[self.cut])
        book(s1, self.cut, self.monday, "14:00")
        self.fill(s2, 3)
        self.assertEqual(self.dispatcher.select(self.cut, self.monday, parse_hhmm("14:00"), 30), s2)

    def test_exclude(self):
        s1 = make_stylist("S1", skills=[self.cut])
        s2 = make_stylist("S2", skills=[self.cut])
        ranked = self.dispatcher.rank(self.cut, self.monday, parse_hhmm("11:00"), 30, exclude=[s1.pk])
        self.assertEqual([c.staff for c in ranked], [s2])

    def test_stage_not_qualified(self):
        make_stylist("S1", skills=[])
        with self.assertRaises(NoQualifiedStaffError) as ctx:
            self.dispatcher.rank(self.cut, self.monday, parse_hhmm("11:00"), 30)
        self.assertEqual(ctx.exception.stage, EliminationStage.NOT_QUALIFIED)

    def test_stage_not_working(self):
        make_stylist("S1", skills=[self.cut], working_days=[MONDAY])
        with self.assertRaises(NoAvailableSlotError) as ctx:
            self.dispatcher.rank(self.cut, next_weekday(SUNDAY), parse_hhmm("11:00"), 30)
        self.assertEqual(ctx.exception.stage, EliminationStage.NOT_WORKING)

    def test_stage_on_leave(self):
        s1 = make_stylist("S1", skills=[self.cut])
        LeaveRecord.objects.create(staff=s1, kind=LeaveRecord.HOLIDAY, start_date=self.monday, end_date=self.monday)
        with self.assertRaises(NoAvailableSlotError) as ctx:
            self.dispatcher.rank(self.cut, self.monday, parse_hhmm("11:00"), 30)
        self.assertEqual(ctx.exception.stage, EliminationStage.ON_LEAVE)

    def test_stage_no_free_window(self):
        s1 = make_stylist("S1", skills=[self.cut])
        s2 = make_stylist("S2", skills=[self.cut])
        book(s1, self.cut, self.monday, "11:00")
        make_break(s2, "11:00", "12:00")
        with self.assertRaises(NoAvailableSlotError) as ctx:
            self.dispatcher.rank(self.cut, self.monday, parse_hhmm("11:00"), 30)
        self.assertEqual(ctx.exception.stage, EliminationStage.NO_FREE_WINDOW)
        self.assertEqual(ctx.exception.category, "no_availability")
