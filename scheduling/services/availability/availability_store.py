# ============================================================================
# scheduling/services/availability/availability_store.py
# Provider availability: recurring weekly rules + date-specific overrides
# ============================================================================
from datetime import date, time
from typing import Iterable, List, NamedTuple, Optional, Union
from uuid import UUID, uuid4
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduling.core.exceptions import (
    DateInPast,
    DuplicateOverride,
    InvalidDayOfWeek,
    InvalidSlotSet,
    NotFoundError,
    ProviderNotFound,
)
from scheduling.core.locks import override_lock_key, weekly_rule_lock_key, write_transaction
from scheduling.models.availability import DateOverride, OverrideType, WeeklyAvailabilityRule
from scheduling.models.provider import ServiceProvider
from scheduling.services.availability.overlap_guard import OverlapGuard
from scheduling.utils.time_intervals import TimeWindow, sort_windows, sunday_based_weekday

logger = logging.getLogger(__name__)

SlotInput = Union[TimeWindow, dict, tuple]


class DayAvailability(NamedTuple):
    """How a provider's availability for one date was resolved"""
    source: str  # "weekly", "custom", "blackout", "vacation" or "none"
    windows: Optional[List[TimeWindow]]
    override: Optional[DateOverride]


def _coerce_window(slot: SlotInput) -> TimeWindow:
    if isinstance(slot, TimeWindow):
        return slot
    if isinstance(slot, dict):
        try:
            return TimeWindow.from_dict(slot)
        except (KeyError, ValueError) as e:
            raise InvalidSlotSet(f"Invalid time slot format: {slot!r}") from e
    if isinstance(slot, tuple) and len(slot) == 2 and all(isinstance(t, time) for t in slot):
        return TimeWindow(slot[0], slot[1])
    raise InvalidSlotSet(f"Invalid time slot format: {slot!r}")


class AvailabilityStore:
    """Reads and writes a provider's availability facts"""

    @staticmethod
    def require_provider(db: Session, provider_id: UUID) -> ServiceProvider:
        provider = db.get(ServiceProvider, provider_id)
        if not provider:
            raise ProviderNotFound(f"Provider {provider_id} not found")
        return provider

    # ------------------------------------------------------------------------
    # Weekly rules
    # ------------------------------------------------------------------------

    @staticmethod
    def upsert_weekly_rule(
            db: Session,
            provider_id: UUID,
            day_of_week: int,
            start_time: time,
            end_time: time,
            rule_id: Optional[UUID] = None
    ) -> UUID:
        """
        Create a weekly rule, or move an existing one when rule_id is given.

        Re-submitting a rule identical to a stored one returns the stored id.
        Raises InvalidDuration / OverlapConflict via the overlap guard.
        """
        if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
            raise InvalidDayOfWeek(f"day_of_week must be between 0 (Sunday) and 6, got {day_of_week!r}")

        with write_transaction(db, weekly_rule_lock_key(provider_id, day_of_week)):
            AvailabilityStore.require_provider(db, provider_id)

            rule = None
            if rule_id is not None:
                rule = db.get(WeeklyAvailabilityRule, rule_id)
                if not rule or rule.provider_id != provider_id:
                    raise NotFoundError(f"Availability rule {rule_id} not found")
            else:
                identical = db.query(WeeklyAvailabilityRule).filter(
                    WeeklyAvailabilityRule.provider_id == provider_id,
                    WeeklyAvailabilityRule.day_of_week == day_of_week,
                    WeeklyAvailabilityRule.start_time == start_time,
                    WeeklyAvailabilityRule.end_time == end_time
                ).first()
                if identical:
                    return identical.id

            OverlapGuard.check_weekly_rule(
                db, provider_id, day_of_week, start_time, end_time, exclude_rule_id=rule_id
            )

            if rule is None:
                rule = WeeklyAvailabilityRule(id=uuid4(), provider_id=provider_id)
                db.add(rule)
            rule.day_of_week = day_of_week
            rule.start_time = start_time
            rule.end_time = end_time
            db.flush()
            saved_id = rule.id

        logger.info(
            f"Saved weekly rule {saved_id} for provider {provider_id}: "
            f"day {day_of_week} {start_time:%H:%M}-{end_time:%H:%M}"
        )
        return saved_id

    @staticmethod
    def delete_weekly_rule(db: Session, rule_id: UUID, provider_id: Optional[UUID] = None) -> bool:
        """Delete a weekly rule. Returns False (and changes nothing) if it is already gone."""
        rule = db.get(WeeklyAvailabilityRule, rule_id)
        if not rule or (provider_id is not None and rule.provider_id != provider_id):
            return False

        with write_transaction(db, weekly_rule_lock_key(rule.provider_id, rule.day_of_week)):
            rule = db.get(WeeklyAvailabilityRule, rule_id)
            if not rule:
                return False
            db.delete(rule)

        logger.info(f"Deleted weekly rule {rule_id}")
        return True

    @staticmethod
    def list_weekly_rules(
            db: Session,
            provider_id: UUID,
            day_of_week: Optional[int] = None
    ) -> List[WeeklyAvailabilityRule]:
        query = db.query(WeeklyAvailabilityRule).filter(
            WeeklyAvailabilityRule.provider_id == provider_id
        )
        if day_of_week is not None:
            query = query.filter(WeeklyAvailabilityRule.day_of_week == day_of_week)
        return query.order_by(
            WeeklyAvailabilityRule.day_of_week.asc(),
            WeeklyAvailabilityRule.start_time.asc()
        ).all()

    # ------------------------------------------------------------------------
    # Date overrides
    # ------------------------------------------------------------------------

    @staticmethod
    def upsert_override(
            db: Session,
            provider_id: UUID,
            override_date: date,
            override_type: Union[OverrideType, str],
            time_slots: Optional[Iterable[SlotInput]] = None,
            reason: Optional[str] = None,
            *,
            today: date,
            replace: bool = False
    ) -> UUID:
        """
        Create the single override for (provider, date).

        With replace=False an existing override raises DuplicateOverride; with
        replace=True it is overwritten in place and keeps its id.
        """
        try:
            override_type = OverrideType(override_type)
        except ValueError as e:
            raise InvalidSlotSet(f"Unknown override type {override_type!r}") from e

        if override_date < today:
            raise DateInPast(f"Cannot set an override for past date {override_date.isoformat()}")

        windows = None if time_slots is None else [_coerce_window(s) for s in time_slots]
        if override_type == OverrideType.CUSTOM:
            windows = OverlapGuard.check_slot_set(windows)
        elif windows:
            raise InvalidSlotSet(f"{override_type.value} overrides cannot carry time slots")
        else:
            windows = None

        with write_transaction(db, override_lock_key(provider_id, override_date)):
            AvailabilityStore.require_provider(db, provider_id)

            override = db.query(DateOverride).filter(
                DateOverride.provider_id == provider_id,
                DateOverride.override_date == override_date
            ).first()

            if override and not replace:
                raise DuplicateOverride(
                    f"An override already exists for {override_date.isoformat()}"
                )

            if override is None:
                override = DateOverride(id=uuid4(), provider_id=provider_id, override_date=override_date)
                db.add(override)
            override.override_type = override_type
            override.time_windows = windows
            override.reason = reason

            try:
                db.flush()
            except IntegrityError as e:
                raise DuplicateOverride(
                    f"An override already exists for {override_date.isoformat()}"
                ) from e
            saved_id = override.id

        logger.info(
            f"Saved {override_type.value} override {saved_id} for provider {provider_id} "
            f"on {override_date.isoformat()}"
        )
        return saved_id

    @staticmethod
    def delete_override(db: Session, override_id: UUID, provider_id: Optional[UUID] = None) -> bool:
        """Delete an override. Returns False (and changes nothing) if it is already gone."""
        override = db.get(DateOverride, override_id)
        if not override or (provider_id is not None and override.provider_id != provider_id):
            return False

        with write_transaction(db, override_lock_key(override.provider_id, override.override_date)):
            override = db.get(DateOverride, override_id)
            if not override:
                return False
            db.delete(override)

        logger.info(f"Deleted override {override_id}")
        return True

    @staticmethod
    def list_overrides(
            db: Session,
            provider_id: UUID,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> List[DateOverride]:
        query = db.query(DateOverride).filter(DateOverride.provider_id == provider_id)
        if start_date:
            query = query.filter(DateOverride.override_date >= start_date)
        if end_date:
            query = query.filter(DateOverride.override_date <= end_date)
        return query.order_by(DateOverride.override_date.asc()).all()

    # ------------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------------

    @staticmethod
    def resolve_day(db: Session, provider_id: UUID, on_date: date) -> DayAvailability:
        """Apply override precedence for one date"""
        override = db.query(DateOverride).filter(
            DateOverride.provider_id == provider_id,
            DateOverride.override_date == on_date
        ).first()

        if override:
            override_type = OverrideType(override.override_type)
            if override.removes_day:
                return DayAvailability(override_type.value, None, override)
            windows = sort_windows(override.time_windows or [])
            return DayAvailability(override_type.value, windows or None, override)

        rules = db.query(WeeklyAvailabilityRule).filter(
            WeeklyAvailabilityRule.provider_id == provider_id,
            WeeklyAvailabilityRule.day_of_week == sunday_based_weekday(on_date)
        ).order_by(WeeklyAvailabilityRule.start_time.asc()).all()

        if not rules:
            return DayAvailability("none", None, None)
        return DayAvailability("weekly", [rule.window for rule in rules], None)

    @staticmethod
    def get_effective_availability(
            db: Session,
            provider_id: UUID,
            on_date: date
    ) -> Optional[List[TimeWindow]]:
        """
        Bookable windows for a date, or None when the provider is off:
        blackout/vacation -> None, custom -> the override's slots,
        otherwise that weekday's weekly rules.
        """
        return AvailabilityStore.resolve_day(db, provider_id, on_date).windows
