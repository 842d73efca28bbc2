# scheduling/models/booking.py
from sqlalchemy import (
    Column, String, Text, Date, Time, DateTime, Numeric, ForeignKey, Uuid,
    CheckConstraint, Index, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum
import uuid

from scheduling.models.base import Base
from scheduling.utils.time_intervals import TimeWindow


class BookingStatus(str, enum.Enum):
    PENDING = "pending"          # Created by the customer, waiting on the provider
    CONFIRMED = "confirmed"      # Provider accepted
    IN_PROGRESS = "in_progress"  # Service is being performed
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"        # Provider refused


# Cancelled/declined bookings free their time window permanently
INACTIVE_STATUSES = (BookingStatus.CANCELLED, BookingStatus.DECLINED)
ACTIVE_STATUSES = tuple(s for s in BookingStatus if s not in INACTIVE_STATUSES)

_status_enum = SQLEnum(
    BookingStatus,
    name="booking_status",
    values_callable=lambda members: [m.value for m in members],
)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_bookings_valid_time_range"),
        Index("ix_bookings_provider_date", "provider_id", "scheduled_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    customer_id = Column(Uuid, nullable=False, index=True)
    provider_id = Column(Uuid, ForeignKey("service_providers.id"), nullable=False)
    service_id = Column(Uuid, ForeignKey("provider_services.id"), nullable=False)

    status = Column(_status_enum, nullable=False, default=BookingStatus.PENDING)

    # Time fields are fixed once the booking exists
    scheduled_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    service_address = Column(Text, nullable=False)
    special_instructions = Column(Text, nullable=True)
    total_price = Column(Numeric(10, 2), nullable=False)

    # Set by the payment collaborator
    payment_intent_id = Column(String, nullable=True)

    # Completion metadata
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completion_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service = relationship("ProviderService")
    history = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        order_by="BookingStatusHistory.created_at",
    )

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        return BookingStatus(self.status) not in INACTIVE_STATUSES

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, provider_id={self.provider_id}, "
            f"date={self.scheduled_date}, {self.window}, status={self.status})>"
        )


class BookingStatusHistory(Base):
    """Audit trail of every status a booking has been in"""
    __tablename__ = "booking_status_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)
    status = Column(_status_enum, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=False)
    # Set client-side so rows written in one transaction keep their order
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    booking = relationship("Booking", back_populates="history")

    def to_dict(self):
        return {
            "id": str(self.id),
            "booking_id": str(self.booking_id),
            "status": BookingStatus(self.status).value,
            "notes": self.notes,
            "created_by": str(self.created_by),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
