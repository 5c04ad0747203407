# booking/apps.py
from django.apps import AppConfig

class BookingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "booking"

    def ready(self):
        # Import signal handlers so Django registers them at startup
        import booking.signals  # noqa: F401
