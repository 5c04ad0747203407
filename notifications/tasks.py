from celery import shared_task
from django.apps import apps
import logging

from booking.services.errors import NotificationDeliveryError
from booking.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def send_booking_confirmation_task(self, appointment_id):
    """
    Deliver the booking confirmation for a committed appointment.
    Transport failures are retried with exponential backoff; after the last
    retry the failure is logged and the task ends quietly.
    """
    Appointment = apps.get_model("booking", "Appointment")
    try:
        appointment = Appointment.objects.select_related("customer", "service", "staff").get(pk=appointment_id)
    except Appointment.DoesNotExist:
        logger.error("Confirmation skipped: appointment #%s not found", appointment_id)
        return {"error": "Appointment not found"}

    try:
        sent = NotificationService().send_booking_confirmation(appointment)
    except NotificationDeliveryError as exc:
        if self.request.retries >= self.max_retries:
            logger.error(
                "Booking confirmation for appointment #%s failed after %s attempts: %s",
                appointment_id, self.request.retries + 1, exc,
            )
            return {"sent": False, "error": str(exc)}
        logger.warning("Booking confirmation for appointment #%s failed, retrying: %s", appointment_id, exc)
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

    return {"sent": sent}
