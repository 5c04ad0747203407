# booking/models.py
#
# Purpose:
# - Core domain models for the booking engine.
#
# Design highlights:
# - Customer: keyed by phone (unique). The booking flow "find-or-creates" by
#   phone so repeat customers never get a second record.
# - Service: duration drives the window length of every availability check;
#   "active" controls bookability.
# - Appointment:
#   • Records customer, service, staff, date + start_time (salon local time)
#   • duration_minutes is copied from the service when the appointment is
#     created so later catalog edits do not move existing windows
#   • status is uppercase ("PENDING", "CONFIRMED", ..., "CANCELLED")
#   • cancelled appointments are kept for history but ignored by availability
# - SlotClaim: one row per booked minute with a UNIQUE (staff, date, minute)
#   constraint. Two overlapping appointments for one stylist would need the
#   same row twice, so the database rejects the second insert even when both
#   requests passed the application-level availability check.
#
# Notes for developers:
# - Claims are maintained by booking/signals.py on every Appointment save, so
#   appointments created from the admin are guarded too.
#

from django.db import models
from django.core.validators import MinValueValidator

from .services.intervals import Interval, minutes_of


# -------------------------
# Customer (person who books)
# -------------------------
class Customer(models.Model):
    """
    A customer who books an appointment.
    - phone is the stable identifier used by find-or-create.
    - email/gender are optional and updated when a later booking supplies them.
    """
    GENDER_CHOICES = [
        ("Male", "Male"),
        ("Female", "Female"),
        ("Other", "Other"),
    ]

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, unique=True)
    email = models.EmailField(blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, default="Other")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.phone})"


# -------------------------
# Service catalog item
# -------------------------
class Service(models.Model):
    """
    A service offered by the salon.

    Rules:
    - duration_minutes must be > 0
    - active controls visibility and bookability
    """
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    duration_minutes = models.PositiveIntegerField(
        validators=[MinValueValidator(1)]  # duration must be >= 1 minute
    )
    price = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(0)],
    )
    active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"


# -------------------------
# Appointment record
# -------------------------
class Appointment(models.Model):
    """
    A booked service appointment for one stylist.

    The window is [start_time, start_time + duration_minutes) on `date`.
    """
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_SERVICE = "IN_SERVICE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (IN_SERVICE, "In service"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
        (NO_SHOW, "No show"),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="appointments")
    service = models.ForeignKey(Service, on_delete=models.PROTECT, related_name="appointments")
    staff = models.ForeignKey("staff.StaffMember", on_delete=models.PROTECT, related_name="appointments")
    date = models.DateField()
    start_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(
        max_length=12,
        choices=STATUS_CHOICES,
        default=PENDING,
        help_text="Appointment lifecycle status",
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    cancellation_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the appointment was cancelled (if applicable).",
    )

    class Meta:
        indexes = [
            models.Index(fields=["staff", "date"]),
            models.Index(fields=["date", "start_time"]),
        ]
        ordering = ["date", "start_time"]

    def __str__(self):
        return f"{self.customer.name} → {self.service.name} on {self.date} {self.start_time:%H:%M}"

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.CANCELLED

    @property
    def window(self) -> Interval:
        return Interval.of(minutes_of(self.start_time), self.duration_minutes)


# -------------------------
# Storage-level double-booking guard
# -------------------------
class SlotClaim(models.Model):
    """
    One minute of a stylist's day owned by a non-cancelled appointment.
    """
    staff = models.ForeignKey("staff.StaffMember", on_delete=models.CASCADE, related_name="slot_claims")
    date = models.DateField()
    minute = models.PositiveSmallIntegerField()
    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name="claims")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["staff", "date", "minute"],
                name="uniq_staff_date_minute_claim",
            ),
        ]

    def __str__(self):
        return f"staff #{self.staff_id} {self.date} minute {self.minute} → appointment #{self.appointment_id}"
