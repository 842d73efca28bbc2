# ============================================================================
# scheduling/services/booking/booking_service.py
# Booking creation and status transitions (write path)
# ============================================================================
"""Service for creating bookings and moving them through their lifecycle"""
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union
from uuid import UUID, uuid4
import logging

from sqlalchemy.orm import Session

from scheduling.core.exceptions import (
    BookingNotFound,
    DateInPast,
    InvalidStatusTransition,
    InvalidTimeRange,
    ServiceNotFound,
)
from scheduling.core.locks import booking_lock_key, write_transaction
from scheduling.core.principal import Principal, Role
from scheduling.models.booking import Booking, BookingStatus, BookingStatusHistory
from scheduling.models.provider import ProviderService
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.booking.booking_validator import BookingConflictValidator
from scheduling.services.booking.status_machine import check_transition

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)


class BookingService:
    """Handles booking writes. Every write is one write_transaction."""

    @staticmethod
    def create_booking(
            db: Session,
            customer_id: UUID,
            provider_id: UUID,
            service_id: UUID,
            scheduled_date: date,
            start_time: time,
            end_time: time,
            service_address: str,
            special_instructions: Optional[str] = None,
            *,
            today: date
    ) -> Booking:
        """
        Create a pending booking.

        Availability and existing bookings are re-read under the
        (provider, date) lock, so two overlapping requests can never both
        succeed regardless of which slots either customer was shown.
        """
        if end_time <= start_time:
            raise InvalidTimeRange("End time must be after start time")
        if scheduled_date < today:
            raise DateInPast("Cannot create bookings for past dates")

        with write_transaction(db, booking_lock_key(provider_id, scheduled_date)):
            AvailabilityStore.require_provider(db, provider_id)

            service = db.get(ProviderService, service_id)
            if not service or service.provider_id != provider_id or not service.is_active:
                raise ServiceNotFound(f"Service {service_id} is not offered by provider {provider_id}")

            BookingConflictValidator.validate(db, provider_id, scheduled_date, start_time, end_time)

            booking = Booking(
                id=uuid4(),
                customer_id=customer_id,
                provider_id=provider_id,
                service_id=service_id,
                status=BookingStatus.PENDING,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                service_address=service_address,
                special_instructions=special_instructions,
                total_price=service.effective_price,
            )
            db.add(booking)
            db.add(BookingStatusHistory(
                id=uuid4(),
                booking_id=booking.id,
                status=BookingStatus.PENDING,
                notes="Booking created",
                created_by=customer_id,
            ))
            db.flush()
            booking_id = booking.id

        logger.info(
            f"Created booking {booking_id} for provider {provider_id} on {scheduled_date} "
            f"{start_time:%H:%M}-{end_time:%H:%M}"
        )
        return db.get(Booking, booking_id)

    @staticmethod
    def _load(db: Session, booking_id: UUID) -> Booking:
        booking = db.get(Booking, booking_id)
        if not booking:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    @staticmethod
    def transition_status(
            db: Session,
            booking_id: UUID,
            principal: Principal,
            target: Union[BookingStatus, str],
            notes: Optional[str] = None,
            completion_notes: Optional[str] = None
    ) -> Booking:
        """
        Move a booking to target if the status machine allows it for this
        principal. Writes a history row; completing also stamps completed_at.
        """
        try:
            target = BookingStatus(target)
        except ValueError as e:
            raise InvalidStatusTransition(f"Unknown booking status {target!r}") from e

        booking = BookingService._load(db, booking_id)

        with write_transaction(db, booking_lock_key(booking.provider_id, booking.scheduled_date)):
            booking = BookingService._load(db, booking_id)
            previous = BookingStatus(booking.status)
            check_transition(booking, principal, target)

            booking.status = target
            if target == BookingStatus.COMPLETED:
                booking.completed_at = datetime.now(timezone.utc)
                booking.completion_notes = completion_notes

            db.add(BookingStatusHistory(
                id=uuid4(),
                booking_id=booking.id,
                status=target,
                notes=notes,
                created_by=principal.id,
            ))

        logger.info(
            f"Booking {booking_id} moved {previous.value} -> {target.value} "
            f"by {principal.role.value} {principal.id}"
        )
        return db.get(Booking, booking_id)

    @staticmethod
    def cancel_confirmed_by_policy(
            db: Session,
            booking_id: UUID,
            actor_id: UUID,
            notes: Optional[str] = None
    ) -> Booking:
        """
        Cancel a confirmed booking. Callers run their own cancellation policy
        first; this only applies the state change as the system.
        """
        return BookingService.transition_status(
            db,
            booking_id,
            Principal(id=actor_id, role=Role.SYSTEM),
            BookingStatus.CANCELLED,
            notes=notes,
        )

    @staticmethod
    def record_payment_intent(db: Session, booking_id: UUID, payment_intent_id: str) -> Booking:
        """Attach the payment processor's intent id to a confirmed or completed booking"""
        booking = BookingService._load(db, booking_id)

        with write_transaction(db, booking_lock_key(booking.provider_id, booking.scheduled_date)):
            booking = BookingService._load(db, booking_id)
            status = BookingStatus(booking.status)
            if status not in PAYABLE_STATUSES:
                raise InvalidStatusTransition(
                    f"Cannot attach a payment to a {status.value} booking"
                )
            booking.payment_intent_id = payment_intent_id

        logger.info(f"Recorded payment intent for booking {booking_id}")
        return db.get(Booking, booking_id)

    @staticmethod
    def get_status_history(db: Session, booking_id: UUID) -> List[BookingStatusHistory]:
        BookingService._load(db, booking_id)
        return db.query(BookingStatusHistory).filter(
            BookingStatusHistory.booking_id == booking_id
        ).order_by(BookingStatusHistory.created_at.asc()).all()
