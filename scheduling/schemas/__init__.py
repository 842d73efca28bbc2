# scheduling/schemas/__init__.py
from .scheduling import (
    TimeSlot,
    WeeklyRuleRequest,
    OverrideRequest,
    BookingRequest,
    TransitionRequest,
    SlotListResponse,
    AvailabilityDayResponse
)

__all__ = [
    "TimeSlot",
    "WeeklyRuleRequest",
    "OverrideRequest",
    "BookingRequest",
    "TransitionRequest",
    "SlotListResponse",
    "AvailabilityDayResponse",
]
