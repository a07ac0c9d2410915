"""Free-slot search over a window of busy calendar intervals."""

from __future__ import annotations

from datetime import date, datetime, time as time_cls, timedelta, tzinfo
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

from pydantic import TypeAdapter

from .models import InvalidInputError

# Accepts "Z" and any fractional-second precision Google returns.
_INSTANT = TypeAdapter(datetime)


class Interval(NamedTuple):
    """A ``[start, end)`` range of timezone-aware instants."""

    start: datetime
    end: datetime

    @property
    def length(self) -> timedelta:
        return self.end - self.start

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def find_free_time(
    window_start: datetime,
    window_end: datetime,
    duration: timedelta | int,
    busy: Iterable[tuple[datetime, datetime]],
) -> list[Interval]:
    """
    Return the gaps of at least ``duration`` between ``busy`` intervals.

    ``busy`` must be ordered by start time; overlapping or touching entries
    are merged implicitly because the cursor never moves backwards. Gaps are
    half-open: a free interval ends exactly where the next busy one starts.

    Args:
        window_start: Beginning of the search window.
        window_end: End of the search window (inclusive bound of the last slot).
        duration: Minimum slot length, as a ``timedelta`` or whole minutes.
        busy: ``(start, end)`` pairs sorted ascending by start.
    """
    if not isinstance(duration, timedelta):
        duration = timedelta(minutes=duration)
    if duration <= timedelta(0):
        raise InvalidInputError("duration", "must be a positive number of minutes")

    free: list[Interval] = []
    cursor = window_start

    for busy_start, busy_end in busy:
        gap_end = min(busy_start, window_end)
        if gap_end - cursor >= duration:
            free.append(Interval(cursor, gap_end))
        if busy_end > cursor:
            cursor = busy_end

    if window_end - cursor >= duration:
        free.append(Interval(cursor, window_end))

    return free


def parse_instant(value: str, tz: tzinfo) -> datetime:
    """
    Parse an RFC3339/ISO-8601 timestamp, localizing naive values to ``tz``.

    Raises:
        pydantic.ValidationError: A ``ValueError`` subclass, for unparsable input.
    """
    parsed = _INSTANT.validate_python(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def _boundary(entry: Any, tz: tzinfo) -> datetime | None:
    if not isinstance(entry, Mapping):
        return None
    if entry.get("dateTime"):
        return parse_instant(entry["dateTime"], tz)
    if entry.get("date"):
        # All-day events block from local midnight.
        day = date.fromisoformat(entry["date"])
        return datetime.combine(day, time_cls.min, tzinfo=tz)
    return None


def busy_intervals_from_events(
    events: Sequence[Mapping[str, Any]],
    tz: tzinfo,
) -> list[Interval]:
    """Convert Google event resources into busy intervals, keeping their order."""
    blocks: list[Interval] = []
    for event in events:
        if event.get("status") == "cancelled":
            continue
        start = _boundary(event.get("start"), tz)
        end = _boundary(event.get("end"), tz)
        if start is None or end is None:
            continue
        blocks.append(Interval(start, max(start, end)))
    return blocks
