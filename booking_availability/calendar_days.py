from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Iterable

from .availability import (
    DEFAULT_TIMEZONE,
    DateRange,
    Timestamp,
    blocked_days_from_timestamps,
    get_blocked_dates_from_ranges,
    normalize_to_day,
)

STATUS_AVAILABLE = "available"
STATUS_BLOCKED = "blocked"
STATUS_PAST = "past"

DEFAULT_CALENDAR_DAYS = 30
MAX_CALENDAR_DAYS = 366


@dataclass(frozen=True)
class CalendarDay:
    day: date
    status: str

    @property
    def selectable(self) -> bool:
        return self.status == STATUS_AVAILABLE

    def to_dict(self) -> dict[str, str]:
        return {"date": self.day.isoformat(), "status": self.status}


def build_room_calendar(
    start_day: Timestamp,
    days: int,
    blocked_ranges: Iterable[DateRange],
    today: Timestamp,
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> list[CalendarDay]:
    """Return one cell per day for a room-type calendar, expanding its blocked ranges."""
    blocked = set(get_blocked_dates_from_ranges(blocked_ranges, tz))
    return _build_calendar(start_day, days, blocked, today, tz)


def build_point_calendar(
    start_day: Timestamp,
    days: int,
    blocked_timestamps: Iterable[Timestamp],
    today: Timestamp,
    tz: tzinfo = DEFAULT_TIMEZONE,
) -> list[CalendarDay]:
    """Return one cell per day for single-day resources (cabs, acting drivers)."""
    blocked = set(blocked_days_from_timestamps(blocked_timestamps, tz))
    return _build_calendar(start_day, days, blocked, today, tz)


def check_out_selectable(check_in: Timestamp | None, candidate: Timestamp, tz: tzinfo = DEFAULT_TIMEZONE) -> bool:
    if check_in is None:
        return False
    return normalize_to_day(candidate, tz) > normalize_to_day(check_in, tz)


def _build_calendar(
    start_day: Timestamp,
    days: int,
    blocked: set[date],
    today: Timestamp,
    tz: tzinfo,
) -> list[CalendarDay]:
    if days <= 0:
        raise ValueError("days must be greater than zero")
    if days > MAX_CALENDAR_DAYS:
        raise ValueError(f"days must not exceed {MAX_CALENDAR_DAYS}")

    cursor = normalize_to_day(start_day, tz)
    today_day = normalize_to_day(today, tz)
    cells: list[CalendarDay] = []
    for _ in range(days):
        if cursor < today_day:
            status = STATUS_PAST
        elif cursor in blocked:
            status = STATUS_BLOCKED
        else:
            status = STATUS_AVAILABLE
        cells.append(CalendarDay(day=cursor, status=status))
        cursor += timedelta(days=1)
    return cells
