from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, Union

DEFAULT_TIMEZONE: tzinfo = timezone.utc
NANOS_PER_MICROSECOND = 1_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Timestamp = Union[int, datetime, date]


@dataclass(frozen=True)
class DateRange:
    """A blocked span treated as the half-open interval [check_in, check_out).

    Values are kept as given (nanoseconds, datetime or date). Malformed
    ranges are not rejected here; they simply never block anything.
    """

    check_in: Timestamp
    check_out: Timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "check_in": _serialize_timestamp(self.check_in),
            "check_out": _serialize_timestamp(self.check_out),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "DateRange":
        check_in = data["check_in"] if "check_in" in data else data["checkIn"]
        check_out = data["check_out"] if "check_out" in data else data["checkOut"]
        return DateRange(check_in=_coerce_timestamp(check_in), check_out=_coerce_timestamp(check_out))


def nanos_to_datetime(nanos: int, tz: tzinfo = DEFAULT_TIMEZONE) -> datetime:
    return (_EPOCH + timedelta(microseconds=int(nanos) // NANOS_PER_MICROSECOND)).astimezone(tz)


def datetime_to_nanos(value: datetime | date, tz: tzinfo = DEFAULT_TIMEZONE) -> int:
    """Return epoch nanoseconds; naive values and dates are wall-clock time in ``tz``."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    delta = value - _EPOCH
    return ((delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds) * NANOS_PER_MICROSECOND


def normalize_to_day(value: Timestamp, tz: tzinfo = DEFAULT_TIMEZONE) -> date:
    """Return the calendar day of ``value``, the only key used for comparisons.

    Integers are epoch nanoseconds. Aware datetimes are converted to ``tz``
    first; naive datetimes are already wall-clock time and are only truncated.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    return nanos_to_datetime(value, tz).date()


def is_date_blocked(value: Timestamp, blocked_ranges: Iterable[DateRange], tz: tzinfo = DEFAULT_TIMEZONE) -> bool:
    """Return True when the day of ``value`` lies inside any blocked range.

    The check-in day is blocked, the check-out day is free so that a new guest
    can arrive on the day the previous one leaves.
    """
    day = normalize_to_day(value, tz)
    for blocked in blocked_ranges:
        start, end = _range_days(blocked, tz)
        if start <= day < end:
            return True
    return False


def does_range_overlap(
    candidate_start: Timestamp,
    candidate_end: Timestamp,
    blocked_ranges: Iterable[DateRange],
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> bool:
    """Return True when [candidate_start, candidate_end) shares a day with any blocked range.

    Intervals that only touch (candidate end == blocked start, or candidate
    start == blocked end) do not overlap.
    """
    start = normalize_to_day(candidate_start, tz)
    end = normalize_to_day(candidate_end, tz)
    for blocked in blocked_ranges:
        blocked_start, blocked_end = _range_days(blocked, tz)
        if start < blocked_end and end > blocked_start:
            return True
    return False


def get_blocked_dates_from_ranges(blocked_ranges: Iterable[DateRange], tz: tzinfo = DEFAULT_TIMEZONE) -> list[date]:
    blocked_days: list[date] = []
    for blocked in blocked_ranges:
        cursor, end = _range_days(blocked, tz)
        while cursor < end:
            blocked_days.append(cursor)
            cursor += timedelta(days=1)
    return blocked_days


def blocked_days_from_timestamps(timestamps: Iterable[Timestamp], tz: tzinfo = DEFAULT_TIMEZONE) -> list[date]:
    return sorted({normalize_to_day(value, tz) for value in timestamps})


def is_day_in_blocked_set(
    value: Timestamp,
    blocked_timestamps: Iterable[Timestamp],
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> bool:
    day = normalize_to_day(value, tz)
    return any(normalize_to_day(blocked, tz) == day for blocked in blocked_timestamps)


def count_nights(check_in: Timestamp, check_out: Timestamp, tz: tzinfo = DEFAULT_TIMEZONE) -> int:
    return (normalize_to_day(check_out, tz) - normalize_to_day(check_in, tz)).days


def first_available_day(
    start: Timestamp,
    blocked_ranges: Iterable[DateRange],
    horizon_days: int = 366,
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> date | None:
    ranges = list(blocked_ranges)
    cursor = normalize_to_day(start, tz)
    for _ in range(horizon_days):
        if not is_date_blocked(cursor, ranges, tz):
            return cursor
        cursor += timedelta(days=1)
    return None


def _range_days(blocked: DateRange, tz: tzinfo) -> tuple[date, date]:
    return normalize_to_day(blocked.check_in, tz), normalize_to_day(blocked.check_out, tz)


def _serialize_timestamp(value: Timestamp) -> int | str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.isoformat()
        return datetime_to_nanos(value)
    if isinstance(value, date):
        return value.isoformat()
    return int(value)


def _coerce_timestamp(value: Any) -> Timestamp:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, bool):
        raise ValueError("timestamp must not be a boolean")
    if isinstance(value, int):
        return _checked_nanos(value)
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return _checked_nanos(int(text))
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text)


def _checked_nanos(nanos: int) -> int:
    try:
        nanos_to_datetime(nanos)
    except OverflowError as error:
        raise ValueError(f"timestamp out of range: {nanos}") from error
    return nanos
