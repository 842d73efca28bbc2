# scheduling/utils/time_intervals.py
"""
Clock-time interval helpers.

Pure functions only - no database access - so the availability and booking
services can run the same checks against freshly loaded rows inside a write
transaction. All intervals are half-open: [start, end).
"""
import re
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Optional, Tuple

MIN_DURATION_MINUTES = 30
MINUTES_PER_DAY = 24 * 60

_CLOCK_TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def to_minutes(value: time) -> int:
    """Minutes since midnight; seconds are dropped (whole-minute resolution)"""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes, for values inside a single day"""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def duration_minutes(start: time, end: time) -> int:
    """Length of [start, end) in whole minutes (negative when end precedes start)"""
    return to_minutes(end) - to_minutes(start)


def meets_min_duration(start: time, end: time, minimum: int = MIN_DURATION_MINUTES) -> bool:
    return duration_minutes(start, end) >= minimum


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    """
    Half-open overlap test.

    09:00-10:00 and 10:00-11:00 do not overlap; identical or nested
    intervals do. Works for any mutually comparable values.
    """
    return a_start < b_end and b_start < a_end


def sunday_based_weekday(day: date) -> int:
    """Day of week with Sunday=0 ... Saturday=6"""
    return (day.weekday() + 1) % 7


def parse_clock_time(value: str) -> time:
    """Parse an HH:MM string into a time, rejecting anything else"""
    match = _CLOCK_TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def format_clock_time(value: time) -> str:
    return value.strftime("%H:%M")


def format_time_range(start: time, end: time) -> str:
    """Human readable range, e.g. '09:00 AM - 10:30 AM'"""
    return f"{start.strftime('%I:%M %p')} - {end.strftime('%I:%M %p')}"


@dataclass(frozen=True, order=True)
class TimeWindow:
    """A [start, end) range of clock time within one day"""

    start: time
    end: time

    @property
    def minutes(self) -> int:
        return duration_minutes(self.start, self.end)

    def overlaps(self, other: "TimeWindow") -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, start: time, end: time) -> bool:
        """True when [start, end) lies entirely inside this window"""
        return self.start <= start and end <= self.end

    def to_dict(self) -> dict:
        return {
            "start_time": format_clock_time(self.start),
            "end_time": format_clock_time(self.end),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimeWindow":
        return cls(
            start=parse_clock_time(data["start_time"]),
            end=parse_clock_time(data["end_time"]),
        )

    def __str__(self) -> str:
        return f"{format_clock_time(self.start)}-{format_clock_time(self.end)}"


def find_overlapping_pair(
        windows: Iterable[TimeWindow]
) -> Optional[Tuple[TimeWindow, TimeWindow]]:
    """Return the first pair of mutually overlapping windows, or None"""
    items = list(windows)
    for i, first in enumerate(items):
        for second in items[i + 1:]:
            if first.overlaps(second):
                return first, second
    return None


def find_containing_window(
        windows: Iterable[TimeWindow],
        start: time,
        end: time
) -> Optional[TimeWindow]:
    """The window that fully contains [start, end), if any"""
    for window in windows:
        if window.contains(start, end):
            return window
    return None


def sort_windows(windows: Iterable[TimeWindow]) -> List[TimeWindow]:
    return sorted(windows, key=lambda w: (w.start, w.end))
