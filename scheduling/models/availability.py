# scheduling/models/availability.py
from sqlalchemy import (
    Column, String, Integer, Time, Date, DateTime, ForeignKey, JSON, Uuid,
    CheckConstraint, UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy.sql import func
from typing import List, Optional
import enum
import uuid

from scheduling.models.base import Base
from scheduling.utils.time_intervals import TimeWindow


class OverrideType(str, enum.Enum):
    """What a date override does to the weekly schedule"""
    BLACKOUT = "blackout"  # Provider unavailable all day
    VACATION = "vacation"  # Provider unavailable all day
    CUSTOM = "custom"      # Provider works only the listed time slots


class WeeklyAvailabilityRule(Base):
    """Recurring weekly working hours for a provider"""
    __tablename__ = "service_availability"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_service_availability_day_of_week"),
        CheckConstraint("end_time > start_time", name="ck_service_availability_time_range"),
        UniqueConstraint(
            "provider_id", "day_of_week", "start_time", "end_time",
            name="uq_service_availability_window"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    def __repr__(self):
        return (
            f"<WeeklyAvailabilityRule(provider_id={self.provider_id}, day={self.day_of_week}, "
            f"{self.window})>"
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "provider_id": str(self.provider_id),
            "day_of_week": self.day_of_week,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
        }


class DateOverride(Base):
    """Date-specific replacement of the weekly schedule (holidays, time off, special hours)"""
    __tablename__ = "availability_overrides"
    __table_args__ = (
        UniqueConstraint("provider_id", "override_date", name="uq_availability_overrides_provider_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id = Column(
        Uuid, ForeignKey("service_providers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    override_date = Column(Date, nullable=False)
    override_type = Column(
        SQLEnum(
            OverrideType,
            name="availability_override_type",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False
    )
    # Only for CUSTOM: [{"start_time": "HH:MM", "end_time": "HH:MM"}, ...]
    time_slots = Column(JSON, nullable=True)
    reason = Column(String, nullable=True)  # "Holiday", "Vacation", etc.

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def time_windows(self) -> Optional[List[TimeWindow]]:
        """Typed view of time_slots; None for blackout/vacation"""
        if self.time_slots is None:
            return None
        return [TimeWindow.from_dict(slot) for slot in self.time_slots]

    @time_windows.setter
    def time_windows(self, windows: Optional[List[TimeWindow]]):
        self.time_slots = None if windows is None else [w.to_dict() for w in windows]

    @property
    def removes_day(self) -> bool:
        return self.override_type in (OverrideType.BLACKOUT, OverrideType.VACATION)

    def __repr__(self):
        return (
            f"<DateOverride(provider_id={self.provider_id}, date={self.override_date}, "
            f"type={self.override_type})>"
        )

    def to_dict(self):
        return {
            "id": str(self.id),
            "provider_id": str(self.provider_id),
            "override_date": self.override_date.isoformat(),
            "override_type": OverrideType(self.override_type).value,
            "time_slots": self.time_slots,
            "reason": self.reason,
        }
