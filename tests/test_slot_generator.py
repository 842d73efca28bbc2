"""Tests for bookable slot generation."""

from datetime import time, timedelta
from uuid import uuid4

import pytest

from scheduling.core.exceptions import InvalidDate, InvalidDuration, ProviderNotFound, ServiceNotFound
from scheduling.models import BookingStatus, OverrideType
from scheduling.services.availability.availability_store import AvailabilityStore
from scheduling.services.availability.slot_generator import SlotGenerator, slice_windows
from scheduling.utils.time_intervals import TimeWindow, parse_clock_time
from tests.conftest import NEXT_MONDAY, TODAY, make_booking, make_provider, make_service


def windows(*pairs):
    return [TimeWindow(parse_clock_time(a), parse_clock_time(b)) for a, b in pairs]


class TestSliceWindows:
    def test_thirty_minute_step_for_long_services(self):
        slots = slice_windows(windows(("09:00", "11:00")), 90)
        assert slots == windows(("09:00", "10:30"), ("09:30", "11:00"))

    def test_window_shorter_than_duration_is_skipped(self):
        assert slice_windows(windows(("09:00", "09:45")), 60) == []

    def test_grid_anchored_at_window_start(self):
        slots = slice_windows(windows(("09:15", "10:45")), 60)
        assert slots == windows(("09:15", "10:15"), ("09:45", "10:45"))

    def test_result_sorted_across_windows(self):
        slots = slice_windows(windows(("14:00", "15:00"), ("09:00", "10:00")), 60)
        assert slots == windows(("09:00", "10:00"), ("14:00", "15:00"))

    def test_booked_intervals_removed(self):
        slots = slice_windows(windows(("09:00", "11:00")), 30, booked=windows(("09:30", "10:00")))
        assert slots == windows(("09:00", "09:30"), ("10:00", "10:30"), ("10:30", "11:00"))


class TestGenerateSlots:
    def test_scenario_a_open_morning(self, db, monday_morning):
        slots = SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 60, today=TODAY)
        assert slots == windows(
            ("09:00", "10:00"), ("09:30", "10:30"), ("10:00", "11:00"),
            ("10:30", "11:30"), ("11:00", "12:00"),
        )

    def test_scenario_b_existing_booking(self, db, monday_morning):
        service = make_service(db, monday_morning)
        make_booking(db, monday_morning, service, NEXT_MONDAY, time(10), time(11))

        slots = SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 60, today=TODAY)
        assert slots == windows(("09:00", "10:00"), ("11:00", "12:00"))

    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.DECLINED])
    def test_inactive_bookings_free_their_time(self, db, monday_morning, status):
        service = make_service(db, monday_morning)
        make_booking(db, monday_morning, service, NEXT_MONDAY, time(10), time(11), status=status)

        slots = SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 60, today=TODAY)
        assert len(slots) == 5

    def test_scenario_c_blackout(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, OverrideType.BLACKOUT, today=TODAY
        )
        assert SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 60, today=TODAY) == []

    def test_custom_override_takes_precedence(self, db, monday_morning):
        AvailabilityStore.upsert_override(
            db, monday_morning.id, NEXT_MONDAY, OverrideType.CUSTOM,
            windows(("14:00", "15:00")), today=TODAY,
        )
        slots = SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 60, today=TODAY)
        assert slots == windows(("14:00", "15:00"))

    def test_slots_have_exact_length_and_fit_availability(self, db, monday_morning):
        available = AvailabilityStore.get_effective_availability(db, monday_morning.id, NEXT_MONDAY)
        for duration in (30, 45, 60, 120, 180):
            for slot in SlotGenerator.generate_slots(
                    db, monday_morning.id, NEXT_MONDAY, duration, today=TODAY
            ):
                assert slot.minutes == duration
                assert any(w.contains(slot.start, slot.end) for w in available)

    def test_duration_longer_than_every_window(self, db, monday_morning):
        assert SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, 240, today=TODAY) == []

    def test_day_without_rules(self, db, monday_morning):
        tuesday = NEXT_MONDAY + timedelta(days=1)
        assert SlotGenerator.generate_slots(db, monday_morning.id, tuesday, 60, today=TODAY) == []

    def test_past_date_rejected(self, db, monday_morning):
        with pytest.raises(InvalidDate):
            SlotGenerator.generate_slots(
                db, monday_morning.id, TODAY - timedelta(days=7), 60, today=TODAY
            )

    @pytest.mark.parametrize("duration", [0, 15, 29, None])
    def test_short_duration_rejected(self, db, monday_morning, duration):
        with pytest.raises(InvalidDuration):
            SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, duration, today=TODAY)

    @pytest.mark.parametrize("duration", [60.0, 45.5, "60", True])
    def test_non_integer_duration_rejected(self, db, monday_morning, duration):
        with pytest.raises(InvalidDuration):
            SlotGenerator.generate_slots(db, monday_morning.id, NEXT_MONDAY, duration, today=TODAY)

    def test_unknown_provider(self, db):
        with pytest.raises(ProviderNotFound):
            SlotGenerator.generate_slots(db, uuid4(), NEXT_MONDAY, 60, today=TODAY)


class TestGenerateSlotsForService:
    def test_uses_effective_duration(self, db, monday_morning):
        service = make_service(db, monday_morning, duration_minutes=60, duration_override=120)
        slots = SlotGenerator.generate_slots_for_service(
            db, monday_morning.id, service.id, NEXT_MONDAY, today=TODAY
        )
        assert slots == windows(("09:00", "11:00"), ("09:30", "11:30"), ("10:00", "12:00"))

    def test_other_providers_service_rejected(self, db, monday_morning):
        foreign = make_service(db, make_provider(db, "Other Co"))
        with pytest.raises(ServiceNotFound):
            SlotGenerator.generate_slots_for_service(
                db, monday_morning.id, foreign.id, NEXT_MONDAY, today=TODAY
            )

    def test_inactive_service_rejected(self, db, monday_morning):
        service = make_service(db, monday_morning, is_active=False)
        with pytest.raises(ServiceNotFound):
            SlotGenerator.generate_slots_for_service(
                db, monday_morning.id, service.id, NEXT_MONDAY, today=TODAY
            )
