# notifications/models.py
#
# Purpose:
# - Record every confirmation attempt sent to a customer.
#
# Design:
# - FK to booking.Customer; the appointment link is kept for auditing and
#   survives as NULL if the appointment row is ever removed.
# - 'sent' is the delivery result; 'error' holds the transport failure text.
#
from django.db import models
from booking.models import Appointment, Customer


class Notification(models.Model):
    EMAIL = "email"
    CHANNEL_CHOICES = [(EMAIL, "Email")]

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name="notifications")
    appointment = models.ForeignKey(
        Appointment, on_delete=models.SET_NULL, null=True, blank=True, related_name="notifications"
    )
    channel = models.CharField(max_length=20, choices=CHANNEL_CHOICES, default=EMAIL)
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    sent = models.BooleanField(default=False)
    error = models.CharField(max_length=500, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        state = "sent" if self.sent else "not sent"
        return f"Notification to {self.customer.name} ({state})"
