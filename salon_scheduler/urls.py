# salon_scheduler/urls.py
#
# Purpose:
# - Project URL router.
# - Every JSON API lives under /api/ so the admin keeps its own URL space.
#
from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    # Django admin (staff, breaks, leave and settings are maintained here)
    path("admin/", admin.site.urls),

    # =====
    # API's
    # =====
    path("api/", include("booking.urls")),
    path("api/staff/", include("staff.urls")),
]
