# ============================================================================
# scheduling/services/availability/overlap_guard.py
# Write-time gate for availability data - call inside write_transaction()
# ============================================================================
from datetime import time
from typing import Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from scheduling.core.exceptions import InvalidDuration, InvalidSlotSet, OverlapConflict
from scheduling.models.availability import WeeklyAvailabilityRule
from scheduling.utils.time_intervals import (
    MIN_DURATION_MINUTES,
    TimeWindow,
    duration_minutes,
    find_overlapping_pair,
    intervals_overlap,
)

logger = logging.getLogger(__name__)


class OverlapGuard:
    """Rejects sub-minimum or overlapping availability before it is persisted"""

    @staticmethod
    def check_duration(start_time: time, end_time: time) -> None:
        """InvalidDuration unless end > start and the span is at least 30 whole minutes"""
        minutes = duration_minutes(start_time, end_time)
        if minutes <= 0:
            raise InvalidDuration(
                f"End time {end_time:%H:%M} must be after start time {start_time:%H:%M}"
            )
        if minutes < MIN_DURATION_MINUTES:
            raise InvalidDuration(
                f"Time slot must be at least {MIN_DURATION_MINUTES} minutes (got {minutes} minutes)"
            )

    @staticmethod
    def check_weekly_rule(
            db: Session,
            provider_id: UUID,
            day_of_week: int,
            start_time: time,
            end_time: time,
            exclude_rule_id: Optional[UUID] = None
    ) -> None:
        """
        Validate a candidate weekly rule against the provider's other rules
        for the same weekday. exclude_rule_id skips the rule being updated.
        """
        OverlapGuard.check_duration(start_time, end_time)

        existing = db.query(WeeklyAvailabilityRule).filter(
            WeeklyAvailabilityRule.provider_id == provider_id,
            WeeklyAvailabilityRule.day_of_week == day_of_week
        ).all()

        for rule in existing:
            if exclude_rule_id is not None and rule.id == exclude_rule_id:
                continue
            if intervals_overlap(start_time, end_time, rule.start_time, rule.end_time):
                logger.warning(
                    f"Rejected weekly rule {start_time:%H:%M}-{end_time:%H:%M} for provider "
                    f"{provider_id} day {day_of_week}: overlaps {rule.window}"
                )
                raise OverlapConflict(
                    f"Time slot overlaps with existing slot {rule.window}"
                )

    @staticmethod
    def check_slot_set(windows: Optional[Iterable[TimeWindow]]) -> List[TimeWindow]:
        """
        Validate a custom override's slots as a set: non-empty, each slot at
        least 30 minutes, no two slots overlapping. Returns the slots sorted.
        """
        if windows is None:
            raise InvalidSlotSet("Custom overrides require time slots")

        slots = sorted(windows, key=lambda w: (w.start, w.end))
        if not slots:
            raise InvalidSlotSet("Custom overrides require at least one time slot")

        for slot in slots:
            try:
                OverlapGuard.check_duration(slot.start, slot.end)
            except InvalidDuration as e:
                raise InvalidSlotSet(f"Invalid time slot {slot}: {e.message}") from e

        pair = find_overlapping_pair(slots)
        if pair:
            raise InvalidSlotSet(f"Time slots cannot overlap ({pair[0]} and {pair[1]})")

        return slots
