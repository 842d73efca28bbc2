# ============================================================================
# FILE: scheduling/api/v1/bookings.py
# Booking endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from scheduling.api.dependencies import get_current_principal, get_today
from scheduling.config.database import get_db
from scheduling.core.exceptions import BookingNotFound
from scheduling.core.principal import Principal
from scheduling.models.booking import Booking, BookingStatus
from scheduling.schemas import BookingRequest, TransitionRequest
from scheduling.services.booking.booking_query_service import BookingQueryService
from scheduling.services.booking.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _require_party(db: Session, booking_id: UUID, principal: Principal) -> Booking:
    """The caller must be the booking's customer or its provider"""
    booking = db.get(Booking, booking_id)
    if not booking:
        raise BookingNotFound(f"Booking {booking_id} not found")
    if principal.id not in (booking.customer_id, booking.provider_id):
        raise HTTPException(status_code=403, detail="Not a party to this booking")
    return booking


@router.post("", status_code=201)
def create_booking(
        payload: BookingRequest,
        principal: Principal = Depends(get_current_principal),
        today: date = Depends(get_today),
        db: Session = Depends(get_db)
):
    """Request a booking. It starts out pending until the provider confirms."""
    if not principal.is_customer:
        raise HTTPException(status_code=403, detail="Only customers can create bookings")

    booking = BookingService.create_booking(
        db,
        customer_id=principal.id,
        provider_id=payload.provider_id,
        service_id=payload.service_id,
        scheduled_date=payload.scheduled_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        service_address=payload.service_address,
        special_instructions=payload.special_instructions,
        today=today
    )
    return BookingQueryService.get_booking(db, booking.id)


@router.get("")
def list_my_bookings(
        status: Optional[BookingStatus] = Query(None, description="Filter by status"),
        on_date: Optional[date] = Query(None, alias="date", description="Provider only: filter by date"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Bookings the caller made (customer) or was booked for (provider)."""
    if principal.is_provider:
        return BookingQueryService.list_provider_bookings(
            db=db,
            provider_id=principal.id,
            on_date=on_date,
            status=status,
            skip=skip,
            limit=limit
        )

    return BookingQueryService.list_customer_bookings(
        db=db,
        customer_id=principal.id,
        status=status,
        skip=skip,
        limit=limit
    )


@router.get("/{booking_id}")
def get_booking(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    _require_party(db, booking_id, principal)
    return BookingQueryService.get_booking(db, booking_id)


@router.post("/{booking_id}/transitions")
def transition_booking(
        booking_id: UUID,
        payload: TransitionRequest,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    """Move a booking along its lifecycle (confirm, decline, start, complete, cancel)."""
    booking = BookingService.transition_status(
        db,
        booking_id,
        principal,
        payload.status,
        notes=payload.notes,
        completion_notes=payload.completion_notes
    )
    return BookingQueryService.get_booking(db, booking.id)


@router.get("/{booking_id}/history")
def get_booking_history(
        booking_id: UUID,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db)
):
    _require_party(db, booking_id, principal)
    history = BookingService.get_status_history(db, booking_id)
    return {
        "booking_id": str(booking_id),
        "history": [entry.to_dict() for entry in history]
    }
