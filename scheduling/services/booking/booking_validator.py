# ============================================================================
# scheduling/services/booking/booking_validator.py
# Booking-time re-check of availability and overlap (write path)
# ============================================================================
from datetime import date, time
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from scheduling.core.exceptions import OutsideAvailability, SlotAlreadyBooked
from scheduling.models.booking import Booking, INACTIVE_STATUSES
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.utils.time_intervals import TimeWindow, find_containing_window, intervals_overlap

logger = logging.getLogger(__name__)


class BookingConflictValidator:
    """
    Confirms a requested window is inside availability and free of other
    active bookings. Must run in the same write_transaction as the insert:
    the slot list a customer saw earlier is only advisory.
    """

    @staticmethod
    def active_bookings(
            db: Session,
            provider_id: UUID,
            on_date: date,
            exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Bookings that occupy the provider's time on a date (not cancelled/declined)"""
        query = db.query(Booking).filter(
            Booking.provider_id == provider_id,
            Booking.scheduled_date == on_date,
            Booking.status.notin_(INACTIVE_STATUSES)
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.order_by(Booking.start_time.asc()).all()

    @staticmethod
    def booked_windows(db: Session, provider_id: UUID, on_date: date) -> List[TimeWindow]:
        return [b.window for b in BookingConflictValidator.active_bookings(db, provider_id, on_date)]

    @staticmethod
    def validate(
            db: Session,
            provider_id: UUID,
            on_date: date,
            start_time: time,
            end_time: time,
            exclude_booking_id: Optional[UUID] = None
    ) -> TimeWindow:
        """
        Returns the availability window containing the request.

        Raises OutsideAvailability if no single window contains [start, end),
        SlotAlreadyBooked if any active booking overlaps it.
        """
        windows = AvailabilityStore.get_effective_availability(db, provider_id, on_date)
        container = find_containing_window(windows or [], start_time, end_time)
        if container is None:
            logger.warning(
                f"Provider {provider_id} not available on {on_date} "
                f"{start_time:%H:%M}-{end_time:%H:%M}"
            )
            raise OutsideAvailability("Provider is not available at the requested time")

        for booking in BookingConflictValidator.active_bookings(
                db, provider_id, on_date, exclude_booking_id
        ):
            if intervals_overlap(start_time, end_time, booking.start_time, booking.end_time):
                logger.warning(
                    f"Slot {start_time:%H:%M}-{end_time:%H:%M} on {on_date} for provider "
                    f"{provider_id} collides with booking {booking.id}"
                )
                raise SlotAlreadyBooked("Time slot is already booked")

        return container
