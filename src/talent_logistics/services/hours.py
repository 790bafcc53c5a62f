"""Worked-hours calculation for daily timecard entries."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

HOURS_PRECISION = Decimal("0.01")

_SECONDS_PER_HOUR = Decimal(3600)
_ANCHOR = date(2000, 1, 1)


def round_hours(value: Decimal) -> Decimal:
    """Round to 2 decimal places for persistence."""
    return value.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def _span(start: time, end: time) -> timedelta:
    """Elapsed time from start to end, wrapping past midnight."""
    delta = datetime.combine(_ANCHOR, end) - datetime.combine(_ANCHOR, start)
    if delta < timedelta(0):
        delta += timedelta(days=1)
    return delta


def calculate_daily_hours(
    check_in: time | None,
    check_out: time | None,
    break_start: time | None = None,
    break_end: time | None = None,
) -> Decimal:
    """Calculate hours worked for one day.

    Returns zero when either check-in or check-out is missing. The break is
    deducted only when both of its ends are present.
    """
    if check_in is None or check_out is None:
        return Decimal("0.00")

    worked = _span(check_in, check_out)
    if break_start is not None and break_end is not None:
        worked -= _span(break_start, break_end)

    if worked < timedelta(0):
        worked = timedelta(0)

    hours = Decimal(int(worked.total_seconds())) / _SECONDS_PER_HOUR
    return round_hours(hours)


def sum_hours(values: Iterable[Decimal | None]) -> Decimal:
    """Sum daily hours, treating missing values as zero."""
    total = sum((Decimal(v) for v in values if v is not None), Decimal("0"))
    return round_hours(total)
