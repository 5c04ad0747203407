from datetime import date, datetime, time, timedelta

from django.test import SimpleTestCase
from django.utils import timezone

from booking.services.availability_engine import REASON_BOOKED, TimeSlot
from booking.services.intervals import Interval
from booking.services.slot_utils import (
    consolidate_grids,
    date_to_day,
    earliest_bookable_minute,
    generate_slot_starts,
    slots_payload,
    trim_past_slots,
)


class SlotUtilsTests(SimpleTestCase):
    def local(self, day, hh, mm):
        return timezone.make_aware(datetime.combine(day, time(hh, mm)), timezone.get_current_timezone())

    def test_generate_slot_starts(self):
        self.assertEqual(generate_slot_starts(Interval(540, 660), 60, 30), [540, 570, 600])
        self.assertEqual(generate_slot_starts(Interval(540, 570), 60, 30), [])
        with self.assertRaises(ValueError):
            generate_slot_starts(Interval(540, 660), 30, 0)

    def test_date_to_day(self):
        self.assertEqual(date_to_day("2030-01-31"), date(2030, 1, 31))
        self.assertEqual(date_to_day("2030-01-31T10:00:00"), date(2030, 1, 31))
        for bad in ["", "31/01/2030", "2030-02-30", "tomorrow"]:
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    date_to_day(bad)

    def test_earliest_bookable_minute(self):
        today = timezone.localdate()
        now = self.local(today, 10, 10)
        self.assertIsNone(earliest_bookable_minute(today + timedelta(days=1), now=now))
        self.assertEqual(earliest_bookable_minute(today - timedelta(days=1), now=now), 24 * 60)
        self.assertEqual(earliest_bookable_minute(today, now=now, lead_minutes=30), 640)

    def test_trim_past_slots_today(self):
        """Today's starts before now + lead are hidden; the first kept start is on the grid."""
        today = timezone.localdate()
        slots = [TimeSlot(start, True) for start in range(540, 1080, 30)]
        kept = trim_past_slots(slots, today, now=self.local(today, 10, 10), lead_minutes=30)
        self.assertEqual(kept[0].time, "11:00")
        future = trim_past_slots(slots, today + timedelta(days=3), now=self.local(today, 10, 10))
        self.assertEqual(len(future), len(slots))

    def test_consolidate_grids(self):
        ann = [TimeSlot(540, True), TimeSlot(570, False, REASON_BOOKED), TimeSlot(600, True)]
        ben = [TimeSlot(570, False, REASON_BOOKED), TimeSlot(600, True), TimeSlot(630, True)]
        self.assertEqual(
            consolidate_grids([ann, ben]),
            [
                {"time": "09:00", "available": True, "available_staff_count": 1},
                {"time": "09:30", "available": False, "available_staff_count": 0},
                {"time": "10:00", "available": True, "available_staff_count": 2},
                {"time": "10:30", "available": True, "available_staff_count": 1},
            ],
        )
        self.assertEqual(consolidate_grids([]), [])

    def test_slots_payload(self):
        payload = slots_payload([TimeSlot(540, True), TimeSlot(570, False, "On leave", "Sick Leave")])
        self.assertEqual(payload[0], {"time": "09:00", "available": True})
        self.assertEqual(
            payload[1], {"time": "09:30", "available": False, "reason": "On leave", "detail": "Sick Leave"}
        )
