"""Bookable slot computation from weekly availability and existing bookings.

The generator is a pure function of its inputs: it performs no I/O, holds no
state between calls and always returns slots in ascending start order.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from app.core.exceptions import InvalidTimeFormatException

DEFAULT_GRANULARITY = timedelta(hours=1)

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Anchor date used to do arithmetic on times of day; slots never cross midnight.
_ANCHOR = date(2000, 1, 1)


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open time-of-day interval ``[start, end)``."""

    start: time
    end: time

    @property
    def duration(self) -> timedelta:
        return _at(self.end) - _at(self.start)

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def as_dict(self) -> dict[str, str]:
        return {"start_time": format_time(self.start), "end_time": format_time(self.end)}


def parse_time(value: str | time) -> time:
    """
    Parse a ``HH:MM`` string into a time of day.

    ``datetime.time`` values pass through with seconds dropped.

    Raises:
        InvalidTimeFormatException: If the value is not a valid ``HH:MM`` string
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise InvalidTimeFormatException(value)

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormatException(value)
    return time(int(match.group(1)), int(match.group(2)))


def format_time(value: time) -> str:
    """Render a time of day as ``HH:MM``."""
    return value.strftime("%H:%M")


def day_of_week_for(target: date) -> int:
    """Return the weekday of ``target`` with 0 = Sunday ... 6 = Saturday."""
    return (target.weekday() + 1) % 7


def _at(value: time) -> datetime:
    return datetime.combine(_ANCHOR, value)


def _to_range(item: TimeRange | Mapping[str, Any]) -> TimeRange:
    if isinstance(item, TimeRange):
        return item
    return TimeRange(parse_time(item["start_time"]), parse_time(item["end_time"]))


def generate_slots(
    windows: Iterable[TimeRange | Mapping[str, Any]],
    booked: Iterable[TimeRange | Mapping[str, Any]],
    granularity: timedelta = DEFAULT_GRANULARITY,
) -> list[TimeRange]:
    """
    Produce the bookable slots for one staff member on one date.

    Args:
        windows: Available windows for the date's weekday, as ``TimeRange`` or
            mappings with ``start_time``/``end_time``
        booked: Intervals already committed on that date (pending or approved)
        granularity: Fixed slot length

    Returns:
        Unique slots of exactly ``granularity`` length, contained in a window,
        overlapping no booked interval, in ascending start order

    Raises:
        InvalidTimeFormatException: If any time string is malformed
        ValueError: If granularity is not positive
    """
    if granularity <= timedelta(0):
        raise ValueError("granularity must be positive")

    window_ranges = [_to_range(window) for window in windows]
    booked_ranges = [_to_range(interval) for interval in booked]

    offered: set[TimeRange] = set()
    for window in window_ranges:
        cursor = _at(window.start)
        window_end = _at(window.end)
        # Trailing remainders shorter than the granularity are dropped.
        while cursor + granularity <= window_end:
            candidate = TimeRange(cursor.time(), (cursor + granularity).time())
            if not any(candidate.overlaps(interval) for interval in booked_ranges):
                offered.add(candidate)
            cursor += granularity

    return sorted(offered)


def is_offerable(slots: Iterable[TimeRange], start: time, end: time) -> bool:
    """Check whether ``[start, end)`` is exactly one of the generated slots."""
    requested = TimeRange(parse_time(start), parse_time(end))
    return requested in set(slots)
