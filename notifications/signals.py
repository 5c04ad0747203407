# notifications/signals.py
#
# Purpose:
# - Queue the booking confirmation when an Appointment is created.
#
# Notes:
# - Queuing is deferred until the surrounding transaction commits, so a
#   rolled-back booking never produces a message.
# - With NOTIFICATIONS_ASYNC on, the Celery task goes to the broker; otherwise
#   (tests, management commands, no worker running) it runs in-process.
# - Delivery failures are handled by the task; they never reach the request
#   that created the booking.
#
from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver
from kombu.exceptions import OperationalError as BrokerUnavailable
import logging

from booking.models import Appointment
from notifications.tasks import send_booking_confirmation_task

logger = logging.getLogger(__name__)


def queue_booking_confirmation(appointment_id):
    if getattr(settings, "NOTIFICATIONS_ASYNC", False):
        try:
            send_booking_confirmation_task.delay(appointment_id)
            logger.info("Queued booking confirmation for appointment #%s", appointment_id)
            return
        except BrokerUnavailable as exc:
            logger.error("Broker unavailable (%s); sending confirmation for #%s in-process", exc, appointment_id)
    send_booking_confirmation_task.apply(args=(appointment_id,))


@receiver(post_save, sender=Appointment)
def appointment_created_confirmation(sender, instance: Appointment, created: bool, **kwargs):
    if not created or instance.is_cancelled:
        return
    appointment_id = instance.pk
    transaction.on_commit(lambda: queue_booking_confirmation(appointment_id))
