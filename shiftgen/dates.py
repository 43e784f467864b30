from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta
from typing import Iterable


class InvalidMonth(ValueError):
    pass


def parse_month(month: str) -> tuple[int, int]:
    # month: "YYYY-MM"
    try:
        y, m = month.split("-")
        year, mon = int(y), int(m)
    except (AttributeError, ValueError):
        raise InvalidMonth(f"month must look like YYYY-MM, got {month!r}") from None
    if not 1 <= mon <= 12:
        raise InvalidMonth(f"month out of range in {month!r}")
    return year, mon


def month_range(month: str) -> tuple[date, date]:
    year, mon = parse_month(month)
    start = date(year, mon, 1)
    if start.month == 12:
        end = date(start.year + 1, 1, 1) - timedelta(days=1)
    else:
        end = date(start.year, start.month + 1, 1) - timedelta(days=1)
    return start, end


def iter_days(start: date, end: date) -> Iterable[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5  # 5=Sat,6=Sun


def count_working_days(year: int, month: int) -> int:
    start, end = month_range(f"{year}-{month:02d}")
    return sum(1 for d in iter_days(start, end) if not is_weekend(d))


def week_number(d: date) -> int:
    """Sunday-based week of the year.

    Not ISO-8601: ``ceil((days_since_jan1 + jan1_weekday + 1) / 7)`` with
    Sunday counted as weekday 0. Stored schedules and reports already carry
    week numbers produced by this formula, so it must not drift.
    """
    jan1 = date(d.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7
    return math.ceil(((d - jan1).days + jan1_weekday + 1) / 7)


def shift_window(day: date, start: time, end: time) -> tuple[datetime, datetime]:
    """Start/end timestamps of a shift worked on ``day``.

    An end time at or before the start time means the shift runs past
    midnight and ends on the following calendar day.
    """
    start_dt = datetime.combine(day, start)
    end_dt = datetime.combine(day, end)
    if end_dt <= start_dt:
        end_dt += timedelta(days=1)
    return start_dt, end_dt


def rest_hours(previous_end: datetime, next_start: datetime) -> float:
    return (next_start - previous_end).total_seconds() / 3600
