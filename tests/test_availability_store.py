"""Tests for weekly rules, date overrides and override precedence."""

from datetime import date, time, timedelta
from uuid import uuid4

import pytest

from scheduling.core.exceptions import (
    DateInPast,
    DuplicateOverride,
    InvalidDayOfWeek,
    InvalidDuration,
    InvalidSlotSet,
    NotFoundError,
    OverlapConflict,
    ProviderNotFound,
)
from scheduling.models import DateOverride, OverrideType, WeeklyAvailabilityRule
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.availability.overlap_guard import OverlapGuard
from scheduling.utils.time_intervals import TimeWindow
from tests.conftest import MONDAY, NEXT_MONDAY, TODAY


class TestOverlapGuard:
    def test_rejects_end_before_start(self):
        with pytest.raises(InvalidDuration):
            OverlapGuard.check_duration(time(10), time(9))

    def test_rejects_short_window(self):
        with pytest.raises(InvalidDuration):
            OverlapGuard.check_duration(time(9), time(9, 20))

    def test_slot_set_is_sorted(self):
        slots = OverlapGuard.check_slot_set([
            TimeWindow(time(14), time(15)),
            TimeWindow(time(9), time(10)),
        ])
        assert [s.start for s in slots] == [time(9), time(14)]

    def test_slot_set_rejects_overlap(self):
        with pytest.raises(InvalidSlotSet):
            OverlapGuard.check_slot_set([
                TimeWindow(time(9), time(11)),
                TimeWindow(time(10), time(12)),
            ])

    def test_slot_set_rejects_empty_and_missing(self):
        with pytest.raises(InvalidSlotSet):
            OverlapGuard.check_slot_set([])
        with pytest.raises(InvalidSlotSet):
            OverlapGuard.check_slot_set(None)

    def test_slot_set_rejects_short_slot(self):
        with pytest.raises(InvalidSlotSet):
            OverlapGuard.check_slot_set([TimeWindow(time(9), time(9, 15))])


class TestWeeklyRules:
    def test_create_and_list(self, db, provider):
        rule_id = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(12))
        rules = AvailabilityStore.list_weekly_rules(db, provider.id)
        assert [r.id for r in rules] == [rule_id]
        assert rules[0].to_dict()["start_time"] == "09:00"

    def test_identical_rule_returns_existing_id(self, db, provider):
        first = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(12))
        second = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(12))
        assert first == second
        assert db.query(WeeklyAvailabilityRule).count() == 1

    def test_twenty_minute_rule_rejected(self, db, provider):
        with pytest.raises(InvalidDuration):
            AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(9, 20))
        assert db.query(WeeklyAvailabilityRule).count() == 0

    def test_overlapping_rule_rejected(self, db, provider):
        AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        with pytest.raises(OverlapConflict):
            AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9, 30), time(10, 15))
        assert db.query(WeeklyAvailabilityRule).count() == 1

    def test_adjacent_rule_allowed(self, db, provider):
        AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(10), time(11))
        assert len(AvailabilityStore.list_weekly_rules(db, provider.id, MONDAY)) == 2

    def test_same_hours_on_other_day_allowed(self, db, provider):
        AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY + 1, time(9), time(10))
        assert len(AvailabilityStore.list_weekly_rules(db, provider.id)) == 2

    def test_moving_a_rule_ignores_itself(self, db, provider):
        rule_id = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        moved = AvailabilityStore.upsert_weekly_rule(
            db, provider.id, MONDAY, time(9, 30), time(11), rule_id=rule_id
        )
        assert moved == rule_id
        rule = db.get(WeeklyAvailabilityRule, rule_id)
        assert (rule.start_time, rule.end_time) == (time(9, 30), time(11))

    def test_moving_unknown_rule(self, db, provider):
        with pytest.raises(NotFoundError):
            AvailabilityStore.upsert_weekly_rule(
                db, provider.id, MONDAY, time(9), time(10), rule_id=uuid4()
            )

    @pytest.mark.parametrize("day", [-1, 7])
    def test_invalid_day_of_week(self, db, provider, day):
        with pytest.raises(InvalidDayOfWeek):
            AvailabilityStore.upsert_weekly_rule(db, provider.id, day, time(9), time(10))

    def test_unknown_provider(self, db):
        with pytest.raises(ProviderNotFound):
            AvailabilityStore.upsert_weekly_rule(db, uuid4(), MONDAY, time(9), time(10))

    def test_delete_is_idempotent(self, db, provider):
        rule_id = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        assert AvailabilityStore.delete_weekly_rule(db, rule_id) is True
        assert AvailabilityStore.delete_weekly_rule(db, rule_id) is False
        assert AvailabilityStore.list_weekly_rules(db, provider.id) == []

    def test_delete_scoped_to_provider(self, db, provider):
        rule_id = AvailabilityStore.upsert_weekly_rule(db, provider.id, MONDAY, time(9), time(10))
        assert AvailabilityStore.delete_weekly_rule(db, rule_id, provider_id=uuid4()) is False
        assert len(AvailabilityStore.list_weekly_rules(db, provider.id)) == 1


class TestOverrides:
    def test_blackout_removes_day(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, OverrideType.BLACKOUT, reason="Holiday", today=TODAY
        )
        assert AvailabilityStore.get_effective_availability(db, monday_morning.id, NEXT_MONDAY) is None

    def test_vacation_removes_day(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, "vacation", today=TODAY
        )
        day = AvailabilityStore.resolve_day(db, monday_morning.id, NEXT_MONDAY)
        assert day.source == "vacation"
        assert day.windows is None

    def test_custom_replaces_weekly_rules(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, OverrideType.CUSTOM,
            [{"start_time": "13:00", "end_time": "15:00"}, (time(8), time(9))],
            today=TODAY,
        )
        windows = AvailabilityStore.get_effective_availability(db, monday_morning.id, NEXT_MONDAY)
        assert windows == [TimeWindow(time(8), time(9)), TimeWindow(time(13), time(15))]

    def test_custom_slots_stored_as_hh_mm(self, db, provider):
        override_id = AvailabilityStore.upsert_override(
            db, provider.id, NEXT_MONDAY, OverrideType.CUSTOM,
            [TimeWindow(time(9), time(10))], today=TODAY,
        )
        override = db.get(DateOverride, override_id)
        assert override.time_slots == [{"start_time": "09:00", "end_time": "10:00"}]

    def test_override_only_affects_its_date(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, OverrideType.BLACKOUT, today=TODAY
        )
        following = NEXT_MONDAY + timedelta(days=7)
        assert AvailabilityStore.get_effective_availability(db, monday_morning.id, following) == [
            TimeWindow(time(9), time(12))
        ]

    def test_weekly_rules_apply_without_override(self, db, monday_morning):
        day = AvailabilityStore.resolve_day(db, monday_morning.id, NEXT_MONDAY)
        assert day.source == "weekly"
        assert day.windows == [TimeWindow(time(9), time(12))]

    def test_no_rules_means_no_availability(self, db, monday_morning):
        tuesday = NEXT_MONDAY + timedelta(days=1)
        assert AvailabilityStore.get_effective_availability(db, monday_morning.id, tuesday) is None

    def test_custom_without_slots_rejected(self, db, provider):
        with pytest.raises(InvalidSlotSet):
            AvailabilityStore.upsert_override(
                db, provider.id, NEXT_MONDAY, OverrideType.CUSTOM, [], today=TODAY
            )
        assert db.query(DateOverride).count() == 0

    def test_blackout_with_slots_rejected(self, db, provider):
        with pytest.raises(InvalidSlotSet):
            AvailabilityStore.upsert_override(
                db, provider.id, NEXT_MONDAY, OverrideType.BLACKOUT,
                [TimeWindow(time(9), time(10))], today=TODAY,
            )

    def test_malformed_slot_rejected(self, db, provider):
        with pytest.raises(InvalidSlotSet):
            AvailabilityStore.upsert_override(
                db, provider.id, NEXT_MONDAY, OverrideType.CUSTOM,
                [{"start_time": "9am", "end_time": "10:00"}], today=TODAY,
            )

    def test_past_date_rejected(self, db, provider):
        with pytest.raises(DateInPast):
            AvailabilityStore.upsert_override(
                db, provider.id, TODAY - timedelta(days=1), OverrideType.BLACKOUT, today=TODAY
            )

    def test_today_is_allowed(self, db, provider):
        AvailabilityStore.upsert_override(db, provider.id, TODAY, OverrideType.BLACKOUT, today=TODAY)
        assert len(AvailabilityStore.list_overrides(db, provider.id)) == 1

    def test_second_override_for_date_rejected(self, db, provider):
        AvailabilityStore.upsert_override(db, provider.id, NEXT_MONDAY, OverrideType.BLACKOUT, today=TODAY)
        with pytest.raises(DuplicateOverride):
            AvailabilityStore.upsert_override(
                db, provider.id, NEXT_MONDAY, OverrideType.VACATION, today=TODAY
            )

    def test_replace_keeps_id(self, db, provider):
        first = AvailabilityStore.upsert_override(
            db, provider.id, NEXT_MONDAY, OverrideType.BLACKOUT, today=TODAY
        )
        second = AvailabilityStore.upsert_override(
            db, provider.id, NEXT_MONDAY, OverrideType.CUSTOM,
            [TimeWindow(time(9), time(10))], today=TODAY, replace=True,
        )
        assert first == second
        override = db.get(DateOverride, first)
        assert override.override_type == OverrideType.CUSTOM

    def test_stored_empty_custom_reads_as_unavailable(self, db, provider):
        db.add(DateOverride(
            id=uuid4(), provider_id=provider.id, override_date=NEXT_MONDAY,
            override_type=OverrideType.CUSTOM, time_slots=[],
        ))
        db.commit()
        assert AvailabilityStore.get_effective_availability(db, provider.id, NEXT_MONDAY) is None

    def test_delete_is_idempotent(self, db, provider):
        override_id = AvailabilityStore.upsert_override(
            db, provider.id, NEXT_MONDAY, OverrideType.BLACKOUT, today=TODAY
        )
        assert AvailabilityStore.delete_override(db, override_id) is True
        assert AvailabilityStore.delete_override(db, override_id) is False

    def test_list_filters_by_range(self, db, provider):
        for offset in (1, 8, 15):
            AvailabilityStore.upsert_override(
                db, provider.id, TODAY + timedelta(days=offset), OverrideType.BLACKOUT, today=TODAY
            )
        listed = AvailabilityStore.list_overrides(
            db, provider.id, start_date=TODAY + timedelta(days=2), end_date=TODAY + timedelta(days=10)
        )
        assert [o.override_date for o in listed] == [date(2026, 10, 27)]
