"""Tests for slot generation."""

from datetime import date, time, timedelta

import pytest

from app.core.exceptions import InvalidTimeFormatException
from app.services.slot_generator import (
    TimeRange,
    day_of_week_for,
    format_time,
    generate_slots,
    is_offerable,
    parse_time,
)


def _window(start: str, end: str) -> dict[str, str]:
    return {"start_time": start, "end_time": end}


def _as_strings(slots: list[TimeRange]) -> list[tuple[str, str]]:
    return [(format_time(slot.start), format_time(slot.end)) for slot in slots]


def test_window_split_into_hourly_slots() -> None:
    slots = generate_slots([_window("09:00", "12:00")], [])
    assert _as_strings(slots) == [("09:00", "10:00"), ("10:00", "11:00"), ("11:00", "12:00")]


def test_booked_interval_removes_slot() -> None:
    slots = generate_slots([_window("09:00", "12:00")], [_window("10:00", "11:00")])
    assert _as_strings(slots) == [("09:00", "10:00"), ("11:00", "12:00")]


def test_partial_overlap_blocks_both_neighbours() -> None:
    slots = generate_slots([_window("09:00", "12:00")], [_window("09:30", "10:30")])
    assert _as_strings(slots) == [("11:00", "12:00")]


def test_adjacent_booking_does_not_block() -> None:
    slots = generate_slots([_window("09:00", "11:00")], [_window("11:00", "12:00")])
    assert _as_strings(slots) == [("09:00", "10:00"), ("10:00", "11:00")]


def test_trailing_remainder_is_dropped() -> None:
    slots = generate_slots([_window("09:00", "10:30")], [])
    assert _as_strings(slots) == [("09:00", "10:00")]


def test_window_shorter_than_granularity_yields_nothing() -> None:
    assert generate_slots([_window("09:00", "09:45")], []) == []


def test_overlapping_windows_are_deduplicated_and_sorted() -> None:
    slots = generate_slots(
        [_window("13:00", "15:00"), _window("09:00", "11:00"), _window("10:00", "12:00")],
        [],
    )
    assert _as_strings(slots) == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
        ("11:00", "12:00"),
        ("13:00", "14:00"),
        ("14:00", "15:00"),
    ]


def test_no_windows_yields_nothing() -> None:
    assert generate_slots([], [_window("09:00", "10:00")]) == []


def test_custom_granularity() -> None:
    slots = generate_slots([_window("09:00", "10:00")], [], timedelta(minutes=30))
    assert _as_strings(slots) == [("09:00", "09:30"), ("09:30", "10:00")]


def test_accepts_time_ranges_and_time_values() -> None:
    windows = [TimeRange(time(14, 0), time(16, 0))]
    booked = [{"start_time": time(14, 0), "end_time": time(15, 0)}]
    assert generate_slots(windows, booked) == [TimeRange(time(15, 0), time(16, 0))]


def test_every_slot_fits_a_window_and_avoids_bookings() -> None:
    windows = [_window("08:00", "12:30"), _window("14:00", "17:00")]
    booked = [_window("09:15", "10:45"), _window("15:00", "16:00")]
    slots = generate_slots(windows, booked)

    window_ranges = [TimeRange(parse_time(w["start_time"]), parse_time(w["end_time"])) for w in windows]
    booked_ranges = [TimeRange(parse_time(b["start_time"]), parse_time(b["end_time"])) for b in booked]
    for slot in slots:
        assert slot.duration == timedelta(hours=1)
        assert any(window.contains(slot) for window in window_ranges)
        assert not any(slot.overlaps(interval) for interval in booked_ranges)
    assert slots == sorted(slots)


def test_non_positive_granularity_rejected() -> None:
    with pytest.raises(ValueError):
        generate_slots([_window("09:00", "10:00")], [], timedelta(0))


@pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon", "", "12:00:00"])
def test_malformed_time_rejected(value: str) -> None:
    with pytest.raises(InvalidTimeFormatException):
        parse_time(value)


def test_malformed_window_time_rejected() -> None:
    with pytest.raises(InvalidTimeFormatException):
        generate_slots([_window("9am", "12:00")], [])


def test_parse_time_drops_seconds() -> None:
    assert parse_time(time(9, 30, 15)) == time(9, 30)
    assert parse_time(" 07:05 ") == time(7, 5)


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week_for(date(2024, 3, 3)) == 0  # Sunday
    assert day_of_week_for(date(2024, 3, 4)) == 1  # Monday
    assert day_of_week_for(date(2024, 3, 9)) == 6  # Saturday


def test_is_offerable_requires_exact_slot() -> None:
    slots = generate_slots([_window("09:00", "12:00")], [])
    assert is_offerable(slots, time(10, 0), time(11, 0))
    assert is_offerable(slots, "10:00", "11:00")
    assert not is_offerable(slots, time(10, 30), time(11, 30))
    assert not is_offerable(slots, time(9, 0), time(11, 0))
