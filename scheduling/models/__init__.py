# scheduling/models/__init__.py
from .base import Base
from .provider import ServiceProvider, ProviderService
from .availability import WeeklyAvailabilityRule, DateOverride, OverrideType
from .booking import Booking, BookingStatus, BookingStatusHistory, ACTIVE_STATUSES, INACTIVE_STATUSES

__all__ = [
    "Base",
    "ServiceProvider",
    "ProviderService",
    "WeeklyAvailabilityRule",
    "DateOverride",
    "OverrideType",
    "Booking",
    "BookingStatus",
    "BookingStatusHistory",
    "ACTIVE_STATUSES",
    "INACTIVE_STATUSES",
]
