from django.db import models

class SystemSetting(models.Model):
    """
    Simple key/value settings store for salon-wide scheduling knobs.
    Example keys:
      - SLOT_INTERVAL (e.g., '15')
      - BUSINESS_OPEN (e.g., '09:00')
      - BUSINESS_CLOSE (e.g., '17:00')
      - BOOKING_WINDOW_DAYS (e.g., '30')
    A missing key falls back to settings.SALON_SCHEDULING.
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.CharField(max_length=200)

    def __str__(self):
        return f"{self.key}={self.value}"
