# booking/views.py
#
# Purpose:
# - Public booking API: service catalog, booking creation/cancellation and the
#   availability grids used by the booking front-ends.
# - No login is required; customers are identified by phone.
#
# Error bodies:
# - Every failure answers {"error": ..., "category": ..., "stage"?: ...}.
#   Scheduling errors map to their own status code, serializer validation
#   errors to 400 "bad_input", anything unexpected is logged and answered 500.
#
import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import Appointment, Service
from .serializers import (
    AppointmentSerializer,
    BatchBookingRequestSerializer,
    BookingRequestSerializer,
    ServiceSerializer,
    booking_result,
)
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager
from .services.errors import BookingValidationError, NotFoundError, SchedulingError
from .services.slot_utils import date_to_day, slots_payload

logger = logging.getLogger(__name__)


# -------------------- Error helpers --------------------
def error_response(exc: SchedulingError) -> Response:
    return Response(exc.as_dict(), status=exc.status_code)


def validation_error_response(errors) -> Response:
    return Response(
        {"error": "The booking request is invalid.", "category": "bad_input", "details": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def unexpected_error_response() -> Response:
    return Response(
        {"error": SchedulingError.default_message, "category": SchedulingError.category},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def parse_query_date(request):
    """Required ?date=YYYY-MM-DD, not in the past."""
    raw = (request.query_params.get("date") or "").strip()
    if not raw:
        raise BookingValidationError("Missing 'date'.")
    try:
        day = date_to_day(raw)
    except ValueError as exc:
        raise BookingValidationError(str(exc))
    if day < timezone.localdate():
        raise BookingValidationError("Cannot check availability for past dates.")
    return day


def get_active_service(service_id) -> Service:
    service_id = (str(service_id or "")).strip()
    if not service_id:
        raise BookingValidationError("Missing 'service'.")
    if not service_id.isdigit():
        raise BookingValidationError("'service' must be a service id.")
    service = Service.objects.filter(pk=int(service_id), active=True).first()
    if service is None:
        raise NotFoundError("Service not found.")
    return service


def parse_duration(raw):
    raw = (str(raw or "")).strip()
    if not raw:
        return None
    if not raw.isdigit() or int(raw) <= 0:
        raise BookingValidationError("'duration' must be a positive number of minutes.")
    return int(raw)


# -------------------- ViewSets --------------------
class ServiceViewSet(viewsets.ReadOnlyModelViewSet):
    """Active services only; the catalog is maintained from the admin."""
    serializer_class = ServiceSerializer

    def get_queryset(self):
        return Service.objects.filter(active=True).order_by("id")


class BookingViewSet(viewsets.GenericViewSet):
    """
    Endpoints:
    - POST   /api/bookings/                    create
    - POST   /api/bookings/batch/              create several for one customer, all or nothing
    - GET    /api/bookings/{id}/               read one appointment
    - POST   /api/bookings/{id}/cancel/        cancel with 2h cutoff
    - GET    /api/bookings/availability/       consolidated "no preference" grid
    - GET    /api/bookings/qualified-staff/    qualified stylists with their grids
    """
    queryset = Appointment.objects.select_related("customer", "service", "staff").order_by("-date", "-start_time")
    serializer_class = AppointmentSerializer

    def get_manager(self) -> BookingManager:
        return BookingManager()

    def retrieve(self, request, pk=None):
        appointment = get_object_or_404(self.get_queryset(), pk=pk)
        return Response(self.get_serializer(appointment).data)

    def create(self, request, *args, **kwargs):
        """
        Body:
            {"customer": {"name", "phone", "email"?, "gender"?},
             "appointment": {"serviceId", "staffId" | "NO_PREFERENCE", "date", "time", "notes"?}}
        201 with the booking summary; the confirmation message is sent after commit.
        """
        serializer = BookingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        try:
            appointment = self.get_manager().create_booking(serializer.to_booking_request())
        except SchedulingError as exc:
            logger.info("Booking rejected (%s): %s", exc.category, exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error while creating a booking")
            return unexpected_error_response()

        return Response(booking_result(appointment), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def batch(self, request):
        """
        Body:
            {"customer": {...}, "appointments": [{"serviceId", "staffId", "date", "time", "notes"?}, ...]}
        201 with one booking summary per appointment, in request order.
        Nothing is booked unless every appointment can be.
        """
        serializer = BatchBookingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        try:
            appointments = self.get_manager().create_bookings(serializer.to_booking_requests())
        except SchedulingError as exc:
            logger.info("Batch booking rejected (%s): %s", exc.category, exc.message)
            return error_response(exc)
        except Exception:
            logger.exception("Unexpected error while creating a batch booking")
            return unexpected_error_response()

        return Response([booking_result(a) for a in appointments], status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        """Cancel a booking (public). Respects the 2-hour cutoff."""
        appointment = Appointment.objects.filter(pk=pk).first()
        if appointment is None:
            return error_response(NotFoundError("Appointment not found."))

        try:
            self.get_manager().cancel_booking(appointment, cutoff_minutes=120)
        except ValueError as e:
            return error_response(BookingValidationError(str(e)))

        return Response({"detail": "Booking cancelled."}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="availability")
    def availability(self, request):
        """
        GET /api/bookings/availability/?service=ID&date=YYYY-MM-DD[&location=]
        One grid for "no preference": a time is available when any qualified
        stylist is free then. Today's past slots are left out.
        """
        try:
            service = get_active_service(request.query_params.get("service"))
            day = parse_query_date(request)
        except SchedulingError as exc:
            return error_response(exc)

        slots = AvailabilityEngine().get_consolidated_slots(
            service, day, branch=request.query_params.get("location") or None
        )
        return Response({"date": day.isoformat(), "service": service.pk, "slots": slots})

    @action(detail=False, methods=["get"], url_path="qualified-staff")
    def qualified_staff(self, request):
        """
        GET /api/bookings/qualified-staff/?service=ID&date=YYYY-MM-DD[&duration=][&location=]
        Qualified stylists with at least one bookable slot, each with their
        full slot grid and skills.
        """
        try:
            service = get_active_service(request.query_params.get("service"))
            day = parse_query_date(request)
            duration = parse_duration(request.query_params.get("duration"))
        except SchedulingError as exc:
            return error_response(exc)

        results = AvailabilityEngine().get_qualified_staff_with_slots(
            service, day, duration=duration, branch=request.query_params.get("location") or None
        )
        data = [
            {
                "staff": {"id": row["staff"].pk, "name": row["staff"].name},
                "slots": slots_payload(row["slots"]),
                "skills": [{"id": s.pk, "name": s.name, "category": s.category} for s in row["skills"]],
            }
            for row in results
        ]
        return Response(data)
