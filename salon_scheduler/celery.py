# salon_scheduler/celery.py
#
# Celery application for background work (booking confirmations).
# Configuration is read from Django settings keys prefixed with CELERY_.
#
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "salon_scheduler.settings")

app = Celery("salon_scheduler")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
