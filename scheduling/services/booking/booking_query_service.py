# ============================================================================
# scheduling/services/booking/booking_query_service.py
# Read-only booking views - no FastAPI dependencies, fully testable
# ============================================================================
from datetime import date
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from scheduling.models.booking import Booking, BookingStatus
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.booking.booking_validator import BookingConflictValidator
from scheduling.utils.time_intervals import format_clock_time, format_time_range

AVAILABLE_COLOR = "#E5FFE9"

STATUS_COLORS = {
    BookingStatus.PENDING: "#FF9800",
    BookingStatus.CONFIRMED: "#4CAF50",
    BookingStatus.IN_PROGRESS: "#2196F3",
    BookingStatus.COMPLETED: "#9E9E9E",
    BookingStatus.CANCELLED: "#F44336",
    BookingStatus.DECLINED: "#FF4B4B",
}

STATUS_LABELS = {
    BookingStatus.PENDING: "Pending Confirmation",
    BookingStatus.IN_PROGRESS: "In Progress",
    BookingStatus.COMPLETED: "Completed",
    BookingStatus.CANCELLED: "Cancelled",
    BookingStatus.DECLINED: "Declined",
}

# Availability sorts ahead of a booking that starts at the same time
_ENTRY_ORDER = {"availability": 0, "custom_availability": 0, "booking": 1}


def _status_label(booking: Booking) -> str:
    status = BookingStatus(booking.status)
    if status == BookingStatus.CONFIRMED:
        return format_time_range(booking.start_time, booking.end_time)
    return STATUS_LABELS[status]


class BookingQueryService:
    """Service layer for booking and schedule views."""

    @staticmethod
    def get_provider_schedule(
            db: Session,
            provider_id: UUID,
            on_date: date,
            include_bookings: bool = True
    ) -> Dict[str, Any]:
        """A provider's day: availability windows plus active bookings, ordered by start."""
        AvailabilityStore.require_provider(db, provider_id)
        day = AvailabilityStore.resolve_day(db, provider_id, on_date)

        entry_type = "custom_availability" if day.source == "custom" else "availability"
        title = "Custom Hours" if day.source == "custom" else "Available"

        entries: List[Dict[str, Any]] = [
            {
                "type": entry_type,
                "start_time": format_clock_time(window.start),
                "end_time": format_clock_time(window.end),
                "title": title,
                "subtitle": format_time_range(window.start, window.end),
                "status": None,
                "color": AVAILABLE_COLOR,
                "booking_id": None,
                "service_address": None,
                "_sort": (window.start, _ENTRY_ORDER[entry_type]),
            }
            for window in day.windows or []
        ]

        if include_bookings:
            for booking in BookingConflictValidator.active_bookings(db, provider_id, on_date):
                status = BookingStatus(booking.status)
                entries.append({
                    "type": "booking",
                    "start_time": format_clock_time(booking.start_time),
                    "end_time": format_clock_time(booking.end_time),
                    "title": booking.service.name if booking.service else "Booking",
                    "subtitle": _status_label(booking),
                    "status": status.value,
                    "color": STATUS_COLORS[status],
                    "booking_id": str(booking.id),
                    "service_address": booking.service_address,
                    "_sort": (booking.start_time, _ENTRY_ORDER["booking"]),
                })

        entries.sort(key=lambda entry: entry["_sort"])
        for entry in entries:
            del entry["_sort"]

        return {
            "provider_id": str(provider_id),
            "date": on_date.isoformat(),
            "availability_source": day.source,
            "entries": entries,
        }

    @staticmethod
    def list_customer_bookings(
            db: Session,
            customer_id: UUID,
            status: Optional[Union[BookingStatus, str]] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of a customer's bookings, newest date first."""
        query = db.query(Booking).filter(Booking.customer_id == customer_id)
        if status:
            status = BookingStatus(status)
            query = query.filter(Booking.status == status)

        query = query.order_by(Booking.scheduled_date.desc(), Booking.start_time.desc())
        total = query.count()
        bookings = query.offset(skip).limit(limit).all()

        return {
            "customer_id": str(customer_id),
            "total_bookings": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "status": status.value if status else None
            },
            "bookings": [BookingQueryService._serialize_booking(b) for b in bookings]
        }

    @staticmethod
    def list_provider_bookings(
            db: Session,
            provider_id: UUID,
            on_date: Optional[date] = None,
            status: Optional[Union[BookingStatus, str]] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of a provider's bookings in calendar order."""
        query = db.query(Booking).filter(Booking.provider_id == provider_id)
        if on_date:
            query = query.filter(Booking.scheduled_date == on_date)
        if status:
            status = BookingStatus(status)
            query = query.filter(Booking.status == status)

        query = query.order_by(Booking.scheduled_date.asc(), Booking.start_time.asc())
        total = query.count()
        bookings = query.offset(skip).limit(limit).all()

        return {
            "provider_id": str(provider_id),
            "total_bookings": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "date": on_date.isoformat() if on_date else None,
                "status": status.value if status else None
            },
            "bookings": [BookingQueryService._serialize_booking(b) for b in bookings]
        }

    @staticmethod
    def get_booking(db: Session, booking_id: UUID) -> Optional[Dict[str, Any]]:
        """Get a single booking by ID. Returns None if not found."""
        booking = db.get(Booking, booking_id)
        if not booking:
            return None
        return BookingQueryService._serialize_booking(booking, detailed=True)

    @staticmethod
    def _serialize_booking(booking: Booking, detailed: bool = False) -> Dict[str, Any]:
        data = {
            "id": str(booking.id),
            "customer_id": str(booking.customer_id),
            "provider_id": str(booking.provider_id),
            "service_id": str(booking.service_id),
            "service_name": booking.service.name if booking.service else None,
            "status": BookingStatus(booking.status).value,
            "scheduled_date": booking.scheduled_date.isoformat(),
            "start_time": format_clock_time(booking.start_time),
            "end_time": format_clock_time(booking.end_time),
            "total_price": float(booking.total_price) if booking.total_price is not None else None,
        }

        if detailed:
            data.update({
                "service_address": booking.service_address,
                "special_instructions": booking.special_instructions,
                "payment_intent_id": booking.payment_intent_id,
                "completed_at": booking.completed_at.isoformat() if booking.completed_at else None,
                "completion_notes": booking.completion_notes,
                "created_at": booking.created_at.isoformat() if booking.created_at else None,
            })

        return data
