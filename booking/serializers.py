from rest_framework import serializers

from .models import Appointment, Customer, Service
from .services.booking_manager import NO_PREFERENCE, BookingRequest
from .services.customer_directory import normalize_phone
from .services.intervals import format_hhmm, minutes_of, parse_hhmm


class ServiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ["id", "name", "description", "category", "duration_minutes", "price"]


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "phone", "email", "gender"]


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    gender = serializers.ChoiceField(choices=Customer.GENDER_CHOICES, required=False)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_phone(self, value):
        # Keep the same phone rule everywhere: digits only, 7-15 after normalization
        digits = normalize_phone(value)
        if not 7 <= len(digits) <= 15:
            raise serializers.ValidationError("Phone must contain 7 to 15 digits.")
        return digits


class AppointmentInputSerializer(serializers.Serializer):
    serviceId = serializers.IntegerField(min_value=1)
    staffId = serializers.CharField()  # a stylist id or "NO_PREFERENCE"
    date = serializers.DateField(input_formats=["%Y-%m-%d"])
    time = serializers.CharField(max_length=5)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_staffId(self, value):
        value = str(value).strip()
        if value == NO_PREFERENCE:
            return value
        if not value.isdigit():
            raise serializers.ValidationError('Use a stylist id or "NO_PREFERENCE".')
        return int(value)

    def validate_time(self, value):
        # "HH:MM" is parsed once here; the engine only sees minutes of day
        try:
            return parse_hhmm(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))


def _to_booking_request(appt: dict, customer: dict) -> BookingRequest:
    return BookingRequest(
        service_id=appt["serviceId"],
        date=appt["date"],
        start=appt["time"],
        staff_id=appt["staffId"],
        customer=dict(customer),
        notes=appt.get("notes", ""),
    )


class BookingRequestSerializer(serializers.Serializer):
    """
    Payload of POST /api/bookings/:
        {"customer": {...}, "appointment": {...}}
    """
    customer = CustomerInputSerializer()
    appointment = AppointmentInputSerializer()

    def to_booking_request(self) -> BookingRequest:
        return _to_booking_request(self.validated_data["appointment"], self.validated_data["customer"])


class BatchBookingRequestSerializer(serializers.Serializer):
    """
    Payload of POST /api/bookings/batch/:
        {"customer": {...}, "appointments": [{...}, ...]}
    """
    customer = CustomerInputSerializer()
    appointments = AppointmentInputSerializer(many=True, allow_empty=False)

    def to_booking_requests(self):
        customer = self.validated_data["customer"]
        return [_to_booking_request(appt, customer) for appt in self.validated_data["appointments"]]


class AppointmentSerializer(serializers.ModelSerializer):
    """Read-only listing of an appointment."""
    time = serializers.SerializerMethodField()
    service = ServiceSerializer(read_only=True)
    staff = serializers.CharField(source="staff.name", read_only=True)
    customer = CustomerSerializer(read_only=True)

    class Meta:
        model = Appointment
        fields = ["id", "date", "time", "duration_minutes", "status", "service", "staff", "customer", "notes"]

    def get_time(self, obj):
        return format_hhmm(minutes_of(obj.start_time))


def booking_result(appointment) -> dict:
    """Success body of POST /api/bookings/."""
    service = appointment.service
    return {
        "appointmentId": appointment.pk,
        "date": appointment.date.isoformat(),
        "time": format_hhmm(minutes_of(appointment.start_time)),
        "status": appointment.status,
        "service": {
            "name": service.name,
            "duration": appointment.duration_minutes,
            "price": str(service.price),
        },
        "staff": {"name": appointment.staff.name},
        "customer": {"name": appointment.customer.name, "phone": appointment.customer.phone},
    }
