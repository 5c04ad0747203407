# booking/urls.py
#
# Purpose:
# - Expose the public booking API via a DRF router:
#     * /api/services/                      active service catalog
#     * /api/bookings/                      create a booking
#     * /api/bookings/{id}/cancel/          cancel (2-hour cutoff)
#     * /api/bookings/availability/         consolidated "no preference" grid
#     * /api/bookings/qualified-staff/      qualified stylists with their grids
#
# Notes for developers:
# - Stylist endpoints (including per-stylist slots) live in staff/urls.py,
#   mounted under /api/staff/.

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BookingViewSet, ServiceViewSet

# --------------------------
# DRF Router registrations
# --------------------------
router = DefaultRouter()
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("", include(router.urls)),
]
