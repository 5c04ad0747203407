"""
errors.py
---------
Typed failures of the scheduling engine.

Every error carries:
- category: machine-readable kind used by API clients ("bad_input", "not_found",
  "no_availability", "conflict")
- status_code: the HTTP status the API answers with
- message: a sentence that can be shown to a customer as-is

NoAvailableSlotError also records the stage that eliminated the last candidate,
so a front-end can say "nobody works on Sundays" instead of "no availability".
"""


class SchedulingError(Exception):
    category = "unexpected"
    status_code = 500
    default_message = "Something went wrong while booking."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"error": self.message, "category": self.category}


class BookingValidationError(SchedulingError):
    """Malformed or past-dated input."""
    category = "bad_input"
    status_code = 400
    default_message = "The booking request is invalid."


class NotFoundError(SchedulingError):
    """Unknown (or inactive) service or staff member."""
    category = "not_found"
    status_code = 404
    default_message = "Not found."


class EliminationStage:
    NOT_QUALIFIED = "not_qualified"
    NOT_WORKING = "not_working"
    ON_LEAVE = "on_leave"
    NO_FREE_WINDOW = "no_free_window"

    MESSAGES = {
        NOT_QUALIFIED: "No stylist offers this service.",
        NOT_WORKING: "No stylist who offers this service works on that day.",
        ON_LEAVE: "Every stylist who offers this service is on leave that day.",
        NO_FREE_WINDOW: "No stylist is free at that time.",
    }


class NoAvailableSlotError(SchedulingError):
    category = "no_availability"
    status_code = 409

    def __init__(self, stage, message=None):
        self.stage = stage
        super().__init__(message or EliminationStage.MESSAGES.get(stage, "No availability."))

    def as_dict(self) -> dict:
        data = super().as_dict()
        data["stage"] = self.stage
        return data


class NoQualifiedStaffError(NoAvailableSlotError):
    def __init__(self, message=None):
        super().__init__(EliminationStage.NOT_QUALIFIED, message)


class ConflictError(SchedulingError):
    """The window was taken by another booking (lost race or stale slot list)."""
    category = "conflict"
    status_code = 409
    default_message = "This time slot is no longer available."

    def __init__(self, message=None, staff_id=None):
        self.staff_id = staff_id
        super().__init__(message)


class NotificationDeliveryError(SchedulingError):
    """Raised by the notification gateway to the confirmation task; never reaches a booking caller."""
    category = "notification"
    default_message = "Could not deliver the booking confirmation."
