# staff/views.py
#
# Purpose:
# - Read-only stylist directory for the booking front-ends.
# - Per-stylist slot grid:
#     GET /api/staff/members/{id}/slots/?date=YYYY-MM-DD&duration=MIN
#     GET /api/staff/members/{id}/slots/?date=YYYY-MM-DD&service=ID
#   Every candidate start is returned, marked available or blocked with a
#   reason ("On leave", "Break", "Booked", ...). Today's past starts are left out.
#
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from booking.services.availability_engine import AvailabilityEngine
from booking.services.errors import BookingValidationError, NotFoundError, SchedulingError
from booking.services.slot_utils import slots_payload, trim_past_slots
from booking.views import error_response, get_active_service, parse_duration, parse_query_date
from .models import StaffMember
from .serializers import StaffMemberSerializer


class StaffMemberViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = (
        StaffMember.objects.filter(is_active=True)
        .prefetch_related("skills", "breaks")
        .order_by("id")
    )
    serializer_class = StaffMemberSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        location = self.request.query_params.get("location")
        if location:
            qs = qs.filter(branch=location)
        return qs

    @action(detail=True, methods=["get"])
    def slots(self, request, pk=None):
        try:
            staff = StaffMember.objects.filter(pk=pk).first() if str(pk).isdigit() else None
            if staff is None:
                raise NotFoundError("Stylist not found.")
            day = parse_query_date(request)
            duration = parse_duration(request.query_params.get("duration"))
            if duration is None:
                if not request.query_params.get("service"):
                    raise BookingValidationError("Give either 'duration' or 'service'.")
                duration = get_active_service(request.query_params.get("service")).duration_minutes
        except SchedulingError as exc:
            return error_response(exc)

        engine = AvailabilityEngine()
        slots = engine.get_available_slots(staff, day, duration)
        slots = trim_past_slots(slots, day, lead_minutes=engine.sources.settings.booking_lead_minutes)
        return Response({
            "staff": {"id": staff.pk, "name": staff.name},
            "date": day.isoformat(),
            "duration": duration,
            "slots": slots_payload(slots),
        })
