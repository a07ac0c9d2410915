"""Tests for the free-slot search."""

from datetime import datetime, timedelta, timezone

import pytest

from calendar_mcp.free_time import (
    Interval,
    busy_intervals_from_events,
    find_free_time,
    parse_instant,
)
from calendar_mcp.models import InvalidInputError

UTC = timezone.utc


def at(hour, minute=0, day=3):
    return datetime(2024, 6, day, hour, minute, tzinfo=UTC)


class TestFindFreeTime:
    def test_workday_scenario_skips_short_gap(self):
        busy = [(at(10), at(11)), (at(13), at(14))]

        free = find_free_time(at(9), at(17), 90, busy)

        assert free == [Interval(at(11), at(13)), Interval(at(14), at(17))]

    def test_empty_busy_returns_whole_window(self):
        assert find_free_time(at(9), at(10), 60, []) == [Interval(at(9), at(10))]

    def test_empty_busy_window_too_short(self):
        assert find_free_time(at(9), at(9, 30), 31, []) == []

    def test_overlapping_busy_intervals_are_merged(self):
        busy = [(at(10), at(11)), (at(10, 30), at(11, 30))]

        free = find_free_time(at(9), at(13), 30, busy)

        assert free == [Interval(at(9), at(10)), Interval(at(11, 30), at(13))]
        for slot in free:
            assert slot.end <= at(10) or slot.start >= at(11, 30)

    def test_cursor_never_moves_backwards(self):
        # The second event is fully inside the first one.
        busy = [(at(10), at(12)), (at(10, 30), at(11))]

        free = find_free_time(at(10), at(13), 30, busy)

        assert free == [Interval(at(12), at(13))]

    def test_touching_busy_intervals_leave_no_gap(self):
        busy = [(at(9), at(10)), (at(10), at(11))]

        assert find_free_time(at(9), at(11), 1, busy) == []

    def test_free_interval_ends_at_next_busy_start(self):
        free = find_free_time(at(9), at(12), 60, [(at(10), at(11))])

        assert free[0].end == at(10)

    def test_exact_duration_fits(self):
        free = find_free_time(at(9), at(10), timedelta(hours=1), [])

        assert free == [Interval(at(9), at(10))]

    def test_busy_interval_starting_before_window(self):
        free = find_free_time(at(9), at(12), 60, [(at(8), at(9, 30))])

        assert free == [Interval(at(9, 30), at(12))]

    def test_busy_interval_after_window_end_is_clamped(self):
        free = find_free_time(at(9), at(10), 30, [(at(11), at(12))])

        assert free == [Interval(at(9), at(10))]

    def test_output_lies_within_window_and_is_disjoint(self):
        window_start, window_end = at(8), at(20)
        busy = [
            (at(7), at(8, 15)),
            (at(9), at(9, 45)),
            (at(11), at(12)),
            (at(12), at(12, 30)),
            (at(15), at(16)),
            (at(19, 50), at(21)),
        ]
        duration = timedelta(minutes=20)

        free = find_free_time(window_start, window_end, duration, busy)

        assert free
        for slot in free:
            assert window_start <= slot.start < slot.end <= window_end
            assert slot.length >= duration
        for previous, current in zip(free, free[1:]):
            assert previous.end <= current.start

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration_rejected(self, duration):
        with pytest.raises(InvalidInputError) as excinfo:
            find_free_time(at(9), at(10), duration, [])
        assert excinfo.value.field == "duration"


class TestBusyIntervals:
    def test_timed_and_all_day_events(self):
        events = [
            {"start": {"date": "2024-06-03"}, "end": {"date": "2024-06-04"}},
            {
                "start": {"dateTime": "2024-06-03T10:00:00Z"},
                "end": {"dateTime": "2024-06-03T11:00:00+00:00"},
            },
        ]

        busy = busy_intervals_from_events(events, UTC)

        assert busy == [
            Interval(at(0), at(0, day=4)),
            Interval(at(10), at(11)),
        ]

    def test_cancelled_and_timeless_events_skipped(self):
        events = [
            {"status": "cancelled", "start": {"dateTime": "2024-06-03T10:00:00Z"}, "end": {"dateTime": "2024-06-03T11:00:00Z"}},
            {"id": "no-times"},
        ]

        assert busy_intervals_from_events(events, UTC) == []


def test_parse_instant_localizes_naive_values():
    tz = timezone(timedelta(hours=2))

    assert parse_instant("2024-06-03T09:00:00", tz) == datetime(2024, 6, 3, 9, tzinfo=tz)
    assert parse_instant("2024-06-03T09:00:00Z", tz) == at(9)


@pytest.mark.parametrize(
    "value, microsecond",
    [
        ("2024-06-03T09:00:00.12Z", 120000),
        ("2024-06-03T09:00:00.1234Z", 123400),
        ("2024-06-03T09:00:00.123456Z", 123456),
    ],
)
def test_parse_instant_any_fraction_precision(value, microsecond):
    assert parse_instant(value, UTC) == at(9).replace(microsecond=microsecond)


def test_parse_instant_rejects_garbage():
    with pytest.raises(ValueError):
        parse_instant("next tuesday", UTC)


def test_busy_interval_with_short_fraction():
    events = [
        {
            "start": {"dateTime": "2024-06-03T10:00:00.5Z"},
            "end": {"dateTime": "2024-06-03T11:00:00.25+00:00"},
        }
    ]

    assert busy_intervals_from_events(events, UTC) == [
        Interval(at(10).replace(microsecond=500000), at(11).replace(microsecond=250000)),
    ]
