"""
booking_manager.py
------------------
Coordinates booking creation and cancellation.

Create flow:
1) validate the request (service active, date not past and inside the booking
   window, start time still ahead of us for today's bookings)
2) explicit stylist → must be qualified and free for the exact window;
   no preference → the Dispatcher ranks stylists
3) find-or-create the customer by phone
4) inside one transaction: lock the stylist row, re-check the window and
   insert the PENDING appointment. The insert also writes SlotClaim rows whose
   unique constraint rejects an overlapping booking that slipped past the
   check, which surfaces as ConflictError.
   A no-preference request that loses this race is retried once against the
   next-best stylist.

create_bookings runs the same flow for several requests of one customer: all of
them are validated first, then inserted in one transaction, all or nothing.

The confirmation message is queued after commit by notifications/signals.py and
can never undo a booking.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.db import IntegrityError, OperationalError, connection, transaction
from django.utils import timezone

from configmgr.salon_settings import get_salon_settings
from staff.models import StaffMember
from ..models import Appointment, Service
from .availability_engine import (
    REASON_BOOKED,
    REASON_NOT_WORKING,
    REASON_ON_LEAVE,
    REASON_UNAVAILABLE,
    AvailabilityEngine,
)
from .constraint_sources import ConstraintSources
from .customer_directory import CustomerDirectory, normalize_phone
from .dispatcher import Dispatcher
from .errors import (
    BookingValidationError,
    ConflictError,
    EliminationStage,
    NoAvailableSlotError,
    NoQualifiedStaffError,
    NotFoundError,
)
from .intervals import Interval, format_hhmm, time_of
from .qualification import is_qualified
from .slot_utils import earliest_bookable_minute

logger = logging.getLogger(__name__)

NO_PREFERENCE = "NO_PREFERENCE"

# Blocked reason for an explicit stylist → elimination stage reported back
REASON_STAGES = {
    REASON_NOT_WORKING: EliminationStage.NOT_WORKING,
    REASON_UNAVAILABLE: EliminationStage.NOT_WORKING,
    REASON_ON_LEAVE: EliminationStage.ON_LEAVE,
}


@dataclass
class BookingRequest:
    service_id: int
    date: object
    start: int                        # minute of day
    staff_id: object = NO_PREFERENCE  # a StaffMember id, or NO_PREFERENCE
    customer: dict = field(default_factory=dict)
    notes: str = ""

    @property
    def has_preference(self) -> bool:
        return self.staff_id != NO_PREFERENCE


class BookingManager:
    def __init__(self, engine=None, dispatcher=None, customers=None, salon_settings=None):
        self.salon_settings = salon_settings or get_salon_settings()
        self.engine = engine or AvailabilityEngine(ConstraintSources(self.salon_settings))
        self.dispatcher = dispatcher or Dispatcher(self.engine)
        self.customers = customers or CustomerDirectory()

    # -------------------- validation --------------------
    def _get_service(self, service_id) -> Service:
        service = Service.objects.filter(pk=service_id, active=True).first()
        if service is None:
            raise NotFoundError("Service not found.")
        return service

    def _validate_when(self, request: BookingRequest, duration: int) -> None:
        today = timezone.localdate()
        if request.date < today:
            raise BookingValidationError("Cannot book appointments in the past.")
        if request.date > today + timedelta(days=self.salon_settings.booking_window_days):
            raise BookingValidationError(
                f"Bookings can be made at most {self.salon_settings.booking_window_days} days ahead."
            )
        cutoff = earliest_bookable_minute(request.date)
        if cutoff is not None and request.start <= cutoff:
            raise BookingValidationError("That time has already passed.")
        if request.start < 0 or request.start + duration > 24 * 60:
            raise BookingValidationError("The appointment must start and end on the same day.")

    def _validate_staff_choice(self, request: BookingRequest) -> Optional[StaffMember]:
        if not request.has_preference:
            return None
        if request.staff_id in (None, ""):
            raise BookingValidationError("Choose a stylist or NO_PREFERENCE.")
        try:
            staff_pk = int(request.staff_id)
        except (TypeError, ValueError):
            raise BookingValidationError("Stylist must be an id or NO_PREFERENCE.")
        staff = StaffMember.objects.prefetch_related("skills").filter(pk=staff_pk).first()
        if staff is None:
            raise NotFoundError("Stylist not found.")
        return staff

    # -------------------- window checks --------------------
    def _check_window(self, staff, request: BookingRequest, duration: int) -> None:
        """Raise when `staff` cannot take the requested window."""
        day = self.engine.sources.load_day(staff, request.date)
        blocker = self.engine.window_conflict(day, Interval.of(request.start, duration))
        if blocker is None:
            return
        if blocker.reason == REASON_BOOKED:
            raise ConflictError(staff_id=staff.pk)
        stage = REASON_STAGES.get(blocker.reason, EliminationStage.NO_FREE_WINDOW)
        raise NoAvailableSlotError(stage, f"{staff.name} is not available at that time ({blocker.reason}).")

    def _apply_lock_timeout(self) -> None:
        if connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                # transaction-local, like SET LOCAL
                cursor.execute(
                    "SELECT set_config('lock_timeout', %s, true)",
                    [f"{self.salon_settings.booking_timeout_seconds * 1000}ms"],
                )

    def _insert(self, staff, service, customer, request: BookingRequest) -> Appointment:
        """
        Lock the stylist, re-check the window and insert. Must run inside an
        atomic block; the savepoint lets the caller retry after a conflict.
        A lock that cannot be taken in time (PostgreSQL lock_timeout, SQLite
        "database is locked") is a conflict too.
        """
        duration = service.duration_minutes
        try:
            with transaction.atomic():
                self._apply_lock_timeout()
                StaffMember.objects.select_for_update().filter(pk=staff.pk).first()
                self._check_window(staff, request, duration)
                return Appointment.objects.create(
                    customer=customer,
                    service=service,
                    staff=staff,
                    date=request.date,
                    start_time=time_of(request.start),
                    duration_minutes=duration,
                    status=Appointment.PENDING,
                    notes=request.notes or "",
                )
        except (IntegrityError, OperationalError) as exc:
            logger.warning(
                "Slot claim rejected for staff #%s on %s at %s: %s",
                staff.pk, request.date, format_hhmm(request.start), exc,
            )
            raise ConflictError(staff_id=staff.pk) from exc

    def _candidates(self, request: BookingRequest):
        """
        Validate one request and return (service, ranked stylists, explicit).
        Read-only; raises the first problem found.
        """
        service = self._get_service(request.service_id)
        duration = service.duration_minutes
        self._validate_when(request, duration)
        staff = self._validate_staff_choice(request)

        if staff is not None:
            if not is_qualified(staff, service):
                raise NoQualifiedStaffError(f"{staff.name} does not offer {service.name}.")
            self._check_window(staff, request, duration)
            return service, [staff], True

        ranked = self.dispatcher.rank(service, request.date, request.start, duration)
        return service, [c.staff for c in ranked], False

    def _book(self, request: BookingRequest, customer) -> Appointment:
        service, candidates, explicit = self._candidates(request)

        # One retry against the next-best stylist for no-preference requests
        attempts = candidates[:1] if explicit else candidates[:2]
        for position, candidate in enumerate(attempts, start=1):
            try:
                appointment = self._insert(candidate, service, customer, request)
            except (ConflictError, NoAvailableSlotError):
                if position == len(attempts):
                    raise
                logger.warning("Staff #%s lost the window; trying next candidate", candidate.pk)
                continue
            logger.info(
                "Booked appointment #%s: staff #%s, service #%s, %s %s (%s min)",
                appointment.pk, candidate.pk, service.pk, request.date,
                format_hhmm(request.start), service.duration_minutes,
            )
            return appointment

    # -------------------- public API --------------------
    def create_booking(self, request: BookingRequest) -> Appointment:
        """
        Create a PENDING appointment for `request`.

        Raises:
            BookingValidationError, NotFoundError, NoQualifiedStaffError,
            NoAvailableSlotError, ConflictError
        """
        return self.create_bookings([request])[0]

    def create_bookings(self, requests) -> List[Appointment]:
        """
        Book several appointments for one customer, all or nothing.

        Every request is validated, in order, before anything is written; the
        first problem is raised. The inserts then run in one transaction, so a
        conflict on any of them leaves no appointment behind. Requests for the
        same stylist must not overlap each other.
        """
        requests = list(requests)
        if not requests:
            raise BookingValidationError("No appointments to book.")
        phones = {normalize_phone(r.customer.get("phone")) for r in requests}
        if len(phones) > 1:
            raise BookingValidationError("All appointments in one booking must be for the same customer.")

        try:
            return self._create_bookings(requests)
        except OperationalError as exc:
            # Lock wait expired outside the insert savepoint, e.g. at commit
            logger.warning("Booking transaction could not take its locks: %s", exc)
            raise ConflictError() from exc

    @transaction.atomic
    def _create_bookings(self, requests) -> List[Appointment]:
        for request in requests:
            self._candidates(request)

        first = requests[0]
        customer = self.customers.find_or_create_by_phone(first.customer.get("phone"), first.customer)

        # Candidates are ranked again here so each request sees the ones
        # inserted before it.
        appointments = [self._book(request, customer) for request in requests]
        if len(appointments) > 1:
            logger.info("Booked %s appointments for customer #%s", len(appointments), customer.pk)
        return appointments

    @transaction.atomic
    def cancel_booking(self, appointment, cutoff_minutes: int = 120) -> bool:
        """
        Cancel an appointment if outside the cutoff window.
        The row is kept with status CANCELLED; its window becomes free again
        (booking/signals.py releases the slot claims).
        """
        if appointment.status == Appointment.CANCELLED:
            raise ValueError("This appointment is already cancelled.")

        tz = timezone.get_current_timezone()
        starts_at = timezone.make_aware(
            datetime.combine(appointment.date, appointment.start_time), tz
        )
        if starts_at - timezone.now() <= timedelta(minutes=cutoff_minutes):
            raise ValueError(f"Cannot cancel within {cutoff_minutes // 60} hours of appointment start.")

        appointment.status = Appointment.CANCELLED
        appointment.cancellation_time = timezone.now()
        appointment.save(update_fields=["status", "cancellation_time"])
        logger.info("Cancelled appointment #%s", appointment.pk)
        return True
