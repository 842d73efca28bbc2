# ============================================================================
# FILE: scheduling/api/v1/availability.py
# Provider availability endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID

from scheduling.api.dependencies import get_today, require_provider
from scheduling.config.database import get_db
from scheduling.core.exceptions import InvalidDuration
from scheduling.core.principal import Principal
from scheduling.models.provider import ProviderService
from scheduling.schemas import (
    AvailabilityDayResponse,
    OverrideRequest,
    SlotListResponse,
    TimeSlot,
    WeeklyRuleRequest,
)
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.availability.slot_generator import SlotGenerator
from scheduling.services.booking.booking_query_service import BookingQueryService

router = APIRouter(prefix="/providers/{provider_id}", tags=["availability"])


# ============================================================================
# Read views
# ============================================================================

@router.get("/availability/{on_date}", response_model=AvailabilityDayResponse)
def get_availability(
        provider_id: UUID,
        on_date: date,
        db: Session = Depends(get_db)
):
    """Effective availability windows after override precedence."""
    AvailabilityStore.require_provider(db, provider_id)
    windows = AvailabilityStore.get_effective_availability(db, provider_id, on_date)

    return AvailabilityDayResponse(
        provider_id=str(provider_id),
        date=on_date.isoformat(),
        available=windows is not None,
        windows=[TimeSlot.from_window(w) for w in windows or []]
    )


@router.get("/slots", response_model=SlotListResponse)
def get_slots(
        provider_id: UUID,
        on_date: date = Query(..., alias="date", description="Date to list slots for"),
        duration_minutes: Optional[int] = Query(None, description="Slot length in minutes"),
        service_id: Optional[UUID] = Query(None, description="Take the slot length from this service"),
        today: date = Depends(get_today),
        db: Session = Depends(get_db)
):
    """
    Bookable slots for a date. Advisory only: the booking request is
    re-checked when it is submitted.
    """
    if service_id is not None:
        slots = SlotGenerator.generate_slots_for_service(
            db, provider_id, service_id, on_date, today=today
        )
        duration = db.get(ProviderService, service_id).effective_duration
    elif duration_minutes is not None:
        slots = SlotGenerator.generate_slots(db, provider_id, on_date, duration_minutes, today=today)
        duration = duration_minutes
    else:
        raise InvalidDuration("Either duration_minutes or service_id is required")

    return SlotListResponse(
        provider_id=str(provider_id),
        date=on_date.isoformat(),
        duration_minutes=duration,
        slots=[TimeSlot.from_window(s) for s in slots]
    )


@router.get("/schedule/{on_date}")
def get_schedule(
        provider_id: UUID,
        on_date: date,
        include_bookings: bool = Query(True),
        principal: Principal = Depends(require_provider),
        db: Session = Depends(get_db)
):
    """The provider's own day view. Requires the provider's identity."""
    return BookingQueryService.get_provider_schedule(
        db=db,
        provider_id=provider_id,
        on_date=on_date,
        include_bookings=include_bookings
    )


# ============================================================================
# Weekly rules
# ============================================================================

@router.get("/weekly-rules")
def list_weekly_rules(
        provider_id: UUID,
        day_of_week: Optional[int] = Query(None, ge=0, le=6),
        db: Session = Depends(get_db)
):
    rules = AvailabilityStore.list_weekly_rules(db, provider_id, day_of_week)
    return {
        "provider_id": str(provider_id),
        "rules": [rule.to_dict() for rule in rules]
    }


@router.post("/weekly-rules", status_code=201)
def upsert_weekly_rule(
        provider_id: UUID,
        payload: WeeklyRuleRequest,
        principal: Principal = Depends(require_provider),
        db: Session = Depends(get_db)
):
    rule_id = AvailabilityStore.upsert_weekly_rule(
        db,
        provider_id,
        payload.day_of_week,
        payload.start_time,
        payload.end_time,
        rule_id=payload.rule_id
    )
    return {"success": True, "rule_id": str(rule_id)}


@router.delete("/weekly-rules/{rule_id}")
def delete_weekly_rule(
        provider_id: UUID,
        rule_id: UUID,
        principal: Principal = Depends(require_provider),
        db: Session = Depends(get_db)
):
    deleted = AvailabilityStore.delete_weekly_rule(db, rule_id, provider_id=provider_id)
    return {"success": True, "deleted": deleted}


# ============================================================================
# Date overrides
# ============================================================================

@router.get("/overrides")
def list_overrides(
        provider_id: UUID,
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        db: Session = Depends(get_db)
):
    overrides = AvailabilityStore.list_overrides(db, provider_id, start_date, end_date)
    return {
        "provider_id": str(provider_id),
        "overrides": [override.to_dict() for override in overrides]
    }


@router.put("/overrides")
def put_override(
        provider_id: UUID,
        payload: OverrideRequest,
        principal: Principal = Depends(require_provider),
        today: date = Depends(get_today),
        db: Session = Depends(get_db)
):
    """Create or replace the override for a date."""
    slots = None
    if payload.time_slots is not None:
        slots = [slot.to_window() for slot in payload.time_slots]

    override_id = AvailabilityStore.upsert_override(
        db,
        provider_id,
        payload.override_date,
        payload.override_type,
        slots,
        payload.reason,
        today=today,
        replace=True
    )
    return {"success": True, "override_id": str(override_id)}


@router.delete("/overrides/{override_id}")
def delete_override(
        provider_id: UUID,
        override_id: UUID,
        principal: Principal = Depends(require_provider),
        db: Session = Depends(get_db)
):
    deleted = AvailabilityStore.delete_override(db, override_id, provider_id=provider_id)
    return {"success": True, "deleted": deleted}
