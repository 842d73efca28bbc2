# scheduling/schemas/scheduling.py
from __future__ import annotations
from pydantic import BaseModel, Field, field_serializer, field_validator
from typing import Optional, List
from datetime import date, time
from uuid import UUID

from scheduling.models.availability import OverrideType
from scheduling.models.booking import BookingStatus
from scheduling.utils.time_intervals import TimeWindow, format_clock_time, parse_clock_time


def _clock_time(value):
    """Accept only HH:MM strings (or an already parsed time)"""
    if isinstance(value, time):
        return value
    return parse_clock_time(value)


class TimeSlot(BaseModel):
    """A [start, end) window of clock time"""
    start_time: time = Field(..., description="Window start, HH:MM")
    end_time: time = Field(..., description="Window end, HH:MM")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return _clock_time(v)

    @field_serializer("start_time", "end_time")
    def dump_times(self, v: time) -> str:
        return format_clock_time(v)

    def to_window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @classmethod
    def from_window(cls, window: TimeWindow) -> "TimeSlot":
        return cls(start_time=window.start, end_time=window.end)


class WeeklyRuleRequest(BaseModel):
    """Create or move a recurring weekly window"""
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday ... 6=Saturday")
    start_time: time = Field(..., description="HH:MM")
    end_time: time = Field(..., description="HH:MM")
    rule_id: Optional[UUID] = Field(None, description="Existing rule to move instead of creating one")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return _clock_time(v)


class OverrideRequest(BaseModel):
    """Replace the weekly schedule on one date"""
    override_date: date = Field(..., description="Date the override applies to")
    override_type: OverrideType = Field(..., description="blackout, vacation or custom")
    time_slots: Optional[List[TimeSlot]] = Field(None, description="Required for custom overrides")
    reason: Optional[str] = Field(None, max_length=200)


class BookingRequest(BaseModel):
    """Customer booking request"""
    provider_id: UUID = Field(..., description="Provider to book")
    service_id: UUID = Field(..., description="Catalog service to book")
    scheduled_date: date = Field(..., description="Service date")
    start_time: time = Field(..., description="HH:MM")
    end_time: time = Field(..., description="HH:MM")
    service_address: str = Field(..., min_length=1, description="Where the service is performed")
    special_instructions: Optional[str] = Field(None, description="Notes for the provider")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return _clock_time(v)


class TransitionRequest(BaseModel):
    """Move a booking to another status"""
    status: BookingStatus = Field(..., description="Target status")
    notes: Optional[str] = Field(None, description="Stored on the history row")
    completion_notes: Optional[str] = Field(None, description="Only used when completing")


class SlotListResponse(BaseModel):
    """Bookable windows for a provider on a date"""
    provider_id: str
    date: str
    duration_minutes: int
    slots: List[TimeSlot] = Field(default_factory=list)


class AvailabilityDayResponse(BaseModel):
    """Effective availability for a provider on a date"""
    provider_id: str
    date: str
    available: bool
    windows: List[TimeSlot] = Field(default_factory=list)
