"""
NotificationService
-------------------
Purpose:
- Send the booking confirmation once an appointment is committed.

Rules:
- Best effort. A delivery failure is recorded in the notifications.Notification
  table and raised as NotificationDeliveryError to the caller, which is the
  Celery task in notifications/tasks.py. The task retries and finally logs; the
  failure never reaches the booking request and never rolls back the
  appointment.
- The transport is Django's email backend (console in development, SMTP in
  production). SMS/WhatsApp delivery is not part of this project.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail

from .errors import NotificationDeliveryError

logger = logging.getLogger(__name__)


def render_confirmation(appointment) -> str:
    customer = appointment.customer
    staff_name = appointment.staff.name if appointment.staff_id else "TBA"
    return (
        f"Hi {customer.name},\n\n"
        f"Your appointment request has been received.\n"
        f"- Booking ID: {appointment.pk}\n"
        f"- Service: {appointment.service.name}\n"
        f"- Date/Time: {appointment.date:%A, %B %d, %Y} at {appointment.start_time:%H:%M}\n"
        f"- Stylist: {staff_name}\n"
        f"- Status: {appointment.get_status_display()}\n\n"
        "We look forward to seeing you!"
    )


class NotificationService:
    """
    Sends booking confirmations and records each attempt.
    """

    def send_booking_confirmation(self, appointment) -> bool:
        """
        Send the confirmation and record a Notification row.
        Returns False when the customer has no email address.

        Raises:
            NotificationDeliveryError: when the transport fails.
        """
        from notifications.models import Notification

        customer = appointment.customer
        body = render_confirmation(appointment)

        if not customer.email:
            Notification.objects.create(
                customer=customer,
                appointment=appointment,
                message=body,
                sent=False,
                error="Customer has no email address.",
            )
            logger.info("No email on file for customer #%s; confirmation recorded only", customer.pk)
            return False

        try:
            send_mail(
                subject=f"Booking Confirmation #{appointment.pk}",
                message=body,
                from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
                recipient_list=[customer.email],
                fail_silently=False,  # raise so we can record the failure below
            )
        except Exception as exc:
            Notification.objects.create(
                customer=customer,
                appointment=appointment,
                message=body,
                sent=False,
                error=str(exc)[:500],
            )
            raise NotificationDeliveryError(str(exc)) from exc

        Notification.objects.create(customer=customer, appointment=appointment, message=body, sent=True)
        logger.info("Booking confirmation sent for appointment #%s", appointment.pk)
        return True
