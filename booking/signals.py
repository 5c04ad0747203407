from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Appointment, SlotClaim


# SLOT CLAIM SYNC (storage-level double-booking guard)
@receiver(post_save, sender=Appointment)
def sync_slot_claims(sender, instance, created, **kwargs):
    """
    Keep the appointment's SlotClaim rows in line with its window and status.

    - Non-cancelled: own one claim per minute of [start, start + duration).
      A claim already held by another appointment violates the unique
      constraint and the IntegrityError propagates to the caller's transaction.
    - Cancelled: release every claim so the window can be booked again.
    """
    update_fields = kwargs.get("update_fields")
    if not created and update_fields is not None:
        touched = {"status", "staff", "date", "start_time", "duration_minutes"}
        if not touched.intersection(update_fields):
            return

    if not created:
        SlotClaim.objects.filter(appointment=instance).delete()

    if instance.is_cancelled:
        return

    window = instance.window
    SlotClaim.objects.bulk_create(
        [
            SlotClaim(staff_id=instance.staff_id, date=instance.date, minute=minute, appointment=instance)
            for minute in range(window.start, window.end)
        ]
    )
