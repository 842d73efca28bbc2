# ============================================================================
# scheduling/services/availability/slot_generator.py
# Bookable slot computation (read path, advisory)
# ============================================================================
from datetime import date
from typing import Iterable, List
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from scheduling.core.exceptions import InvalidDate, InvalidDuration, ServiceNotFound
from scheduling.models.provider import ProviderService
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.booking.booking_validator import BookingConflictValidator
from scheduling.utils.time_intervals import (
    MIN_DURATION_MINUTES,
    TimeWindow,
    from_minutes,
    to_minutes,
)

logger = logging.getLogger(__name__)

# Calendar browsing granularity; independent of any service's length so
# services of different durations share consistent start times.
SLOT_STEP_MINUTES = 30


def slice_windows(
        windows: Iterable[TimeWindow],
        duration_minutes: int,
        booked: Iterable[TimeWindow] = ()
) -> List[TimeWindow]:
    """
    Cut availability windows into duration-sized candidates on a fixed
    30-minute grid anchored at each window's start, drop candidates that
    overlap a booked interval, and return them sorted by start.
    """
    booked = list(booked)
    slots = set()

    for window in windows:
        if window.minutes < duration_minutes:
            continue

        window_end = to_minutes(window.end)
        cursor = to_minutes(window.start)
        while cursor + duration_minutes <= window_end:
            candidate = TimeWindow(from_minutes(cursor), from_minutes(cursor + duration_minutes))
            if not any(candidate.overlaps(taken) for taken in booked):
                slots.add(candidate)
            cursor += SLOT_STEP_MINUTES

    return sorted(slots, key=lambda w: (w.start, w.end))


class SlotGenerator:
    """Computes which windows a customer may pick for a provider on a date"""

    @staticmethod
    def generate_slots(
            db: Session,
            provider_id: UUID,
            on_date: date,
            duration_minutes: int,
            *,
            today: date
    ) -> List[TimeWindow]:
        """
        Ordered bookable (start, end) windows. An empty list means no
        availability and is not an error; only malformed input raises.
        """
        if on_date < today:
            raise InvalidDate("Cannot check availability for past dates")
        if not isinstance(duration_minutes, int) or isinstance(duration_minutes, bool):
            raise InvalidDuration(f"Duration must be a whole number of minutes, got {duration_minutes!r}")
        if duration_minutes < MIN_DURATION_MINUTES:
            raise InvalidDuration(f"Duration must be at least {MIN_DURATION_MINUTES} minutes")

        AvailabilityStore.require_provider(db, provider_id)

        windows = AvailabilityStore.get_effective_availability(db, provider_id, on_date)
        if windows is None:
            logger.debug(f"No availability for provider {provider_id} on {on_date}")
            return []

        booked = BookingConflictValidator.booked_windows(db, provider_id, on_date)
        slots = slice_windows(windows, duration_minutes, booked)

        logger.debug(
            f"Generated {len(slots)} slots for provider {provider_id} on {on_date} "
            f"({duration_minutes} min, {len(booked)} active bookings)"
        )
        return slots

    @staticmethod
    def generate_slots_for_service(
            db: Session,
            provider_id: UUID,
            service_id: UUID,
            on_date: date,
            *,
            today: date
    ) -> List[TimeWindow]:
        """Same as generate_slots, with the duration taken from the provider's catalog entry"""
        service = db.get(ProviderService, service_id)
        if not service or service.provider_id != provider_id or not service.is_active:
            raise ServiceNotFound(f"Service {service_id} is not offered by provider {provider_id}")

        return SlotGenerator.generate_slots(
            db, provider_id, on_date, service.effective_duration, today=today
        )
