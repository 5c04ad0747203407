# staff/models.py
#
# Purpose:
# - Stylists and the records that constrain when they can be booked:
#   working days/hours, recurring breaks and leave.
#
# Notes:
# - These rows are maintained from the admin; the scheduling engine only reads them.
# - Times of day are stored as TimeField and converted to minute-of-day ints by
#   booking/services/constraint_sources.py.
#
from django.core.exceptions import ValidationError
from django.db import models


def default_working_days():
    # Monday..Saturday (date.weekday() numbering)
    return [0, 1, 2, 3, 4, 5]


class StaffMember(models.Model):
    """
    A staff member. Only active stylists can be booked.
    - skills: the services this person can perform.
    - work_start/work_end: own working hours; blank means the salon's
      BUSINESS_OPEN/BUSINESS_CLOSE apply.
    """
    STYLIST = "Stylist"
    RECEPTIONIST = "Receptionist"
    MANAGER = "Manager"

    ROLE_CHOICES = [
        (STYLIST, "Stylist"),
        (RECEPTIONIST, "Receptionist"),
        (MANAGER, "Manager"),
    ]
    BOOKABLE_ROLES = {STYLIST}

    WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

    name = models.CharField(max_length=200)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=STYLIST)
    branch = models.CharField(max_length=64, blank=True, help_text="Location id; blank for a single-site salon.")
    is_active = models.BooleanField(default=True)
    is_emergency_unavailable = models.BooleanField(
        default=False,
        help_text="Temporarily blocks all bookings for this person.",
    )
    skills = models.ManyToManyField("booking.Service", related_name="qualified_staff", blank=True)
    working_days = models.JSONField(
        default=default_working_days,
        help_text="Weekday numbers, Monday=0 .. Sunday=6.",
    )
    work_start = models.TimeField(null=True, blank=True)
    work_end = models.TimeField(null=True, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.name

    def clean(self):
        days = self.working_days or []
        if not isinstance(days, list) or any(not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise ValidationError({"working_days": "Use a list of weekday numbers 0 (Mon) .. 6 (Sun)."})
        if (self.work_start is None) != (self.work_end is None):
            raise ValidationError("Set both work_start and work_end, or neither.")
        if self.work_start and self.work_end and self.work_end <= self.work_start:
            raise ValidationError("work_end must be after work_start.")

    def works_on(self, day) -> bool:
        return day.weekday() in (self.working_days or [])

    @property
    def working_day_names(self):
        return [self.WEEKDAY_NAMES[d] for d in sorted(self.working_days or [])]


class Break(models.Model):
    """
    A recurring break in a stylist's day.
    day_of_week empty → every working day; set → only that weekday.
    """
    staff = models.ForeignKey(StaffMember, on_delete=models.CASCADE, related_name="breaks")
    day_of_week = models.PositiveSmallIntegerField(null=True, blank=True)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        ordering = ["staff_id", "start_time"]

    def __str__(self):
        return f"{self.staff.name}: break {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self):
        if self.end_time <= self.start_time:
            raise ValidationError("Break end must be after its start.")
        if self.day_of_week is not None and self.day_of_week > 6:
            raise ValidationError({"day_of_week": "Use 0 (Mon) .. 6 (Sun)."})


class LeaveRecord(models.Model):
    """
    Leave / unavailability for a stylist.

    Exactly one form is used:
    - full days: start_date..end_date inclusive
    - part of a day (or days): start_at..end_at aware datetimes
    """
    HOLIDAY = "holiday"
    HALF_DAY = "half_day"
    SICK = "sick"
    EMERGENCY = "emergency"
    OTHER = "other"

    KIND_CHOICES = [
        (HOLIDAY, "Holiday"),
        (HALF_DAY, "Half Day Leave"),
        (SICK, "Sick Leave"),
        (EMERGENCY, "Unavailable (Emergency)"),
        (OTHER, "Unavailable"),
    ]

    staff = models.ForeignKey(StaffMember, on_delete=models.CASCADE, related_name="leave_records")
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default=HOLIDAY)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    reason = models.TextField(blank=True)

    class Meta:
        ordering = ["staff_id", "start_date", "start_at"]
        indexes = [
            models.Index(fields=["staff", "start_date", "end_date"]),
            models.Index(fields=["staff", "start_at", "end_at"]),
        ]

    def __str__(self):
        if self.is_full_day:
            return f"{self.staff.name}: {self.get_kind_display()} {self.start_date} to {self.end_date}"
        return f"{self.staff.name}: {self.get_kind_display()} {self.start_at} to {self.end_at}"

    @property
    def is_full_day(self) -> bool:
        return self.start_date is not None

    def clean(self):
        has_dates = self.start_date is not None or self.end_date is not None
        has_datetimes = self.start_at is not None or self.end_at is not None
        if has_dates == has_datetimes:
            raise ValidationError("Give either a date range or a datetime range, not both.")
        if has_dates:
            if self.start_date is None or self.end_date is None:
                raise ValidationError("Both start_date and end_date are required.")
            if self.end_date < self.start_date:
                raise ValidationError("End date must not be before start date.")
        else:
            if self.start_at is None or self.end_at is None:
                raise ValidationError("Both start_at and end_at are required.")
            if self.end_at <= self.start_at:
                raise ValidationError("End must be after start.")
