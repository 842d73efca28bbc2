# scheduling/core/exceptions.py
"""
Scheduling error taxonomy.

Three kinds the presentation layer can tell apart:
    validation    - the request was malformed
    conflict      - that time/state is no longer available, pick another
    authorization - the principal is not allowed to do that

Everything derives from ValueError so callers that only catch ValueError
keep working.
"""


class SchedulingError(ValueError):
    """Base class for every rejected scheduling operation"""

    kind = "error"
    code = "scheduling_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "kind": self.kind, "detail": self.message}


# ============================================================================
# Validation errors
# ============================================================================

class ValidationError(SchedulingError):
    kind = "validation"
    code = "validation_error"


class InvalidDate(ValidationError):
    code = "invalid_date"


class InvalidDuration(ValidationError):
    code = "invalid_duration"


class InvalidSlotSet(ValidationError):
    code = "invalid_slot_set"


class DateInPast(ValidationError):
    code = "date_in_past"


class InvalidTimeRange(ValidationError):
    code = "invalid_time_range"


class InvalidDayOfWeek(ValidationError):
    code = "invalid_day_of_week"


class NotFoundError(ValidationError):
    code = "not_found"


class ProviderNotFound(NotFoundError):
    code = "provider_not_found"


class ServiceNotFound(NotFoundError):
    code = "service_not_found"


class BookingNotFound(NotFoundError):
    code = "booking_not_found"


# ============================================================================
# Conflict errors
# ============================================================================

class ConflictError(SchedulingError):
    kind = "conflict"
    code = "conflict"


class OverlapConflict(ConflictError):
    code = "overlap_conflict"


class SlotAlreadyBooked(ConflictError):
    code = "slot_already_booked"


class OutsideAvailability(ConflictError):
    code = "outside_availability"


class DuplicateOverride(ConflictError):
    code = "duplicate_override"


# ============================================================================
# Authorization errors
# ============================================================================

class AuthorizationError(SchedulingError):
    kind = "authorization"
    code = "not_authorized"


class InvalidStatusTransition(AuthorizationError):
    code = "invalid_status_transition"
