"""Reporting window resolution."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from gig_ledger.calculators.types import PeriodType, PeriodWindow
from gig_ledger.errors import ValidationFailure

# Estimated-tax income periods as the IRS defines them: (start month, end month),
# end exclusive. The fourth period runs into January of the next year.
IRS_QUARTERS: dict[int, tuple[int, int]] = {
    1: (1, 4),
    2: (4, 6),
    3: (6, 9),
    4: (9, 13),
}


def _month_start(year: int, month: int) -> date:
    if month > 12:
        return date(year + 1, month - 12, 1)
    return date(year, month, 1)


def resolve_window(
    period: PeriodType | str,
    year: int,
    month: int | None = None,
    quarter: int | None = None,
) -> PeriodWindow:
    """Turn a period request into a half-open ``[start, end)`` window."""
    try:
        period = PeriodType(period)
    except ValueError:
        raise ValidationFailure(f"Unknown period '{period}'") from None

    if period == PeriodType.MONTHLY:
        if month is None or not 1 <= month <= 12:
            raise ValidationFailure("Month (1-12) is required for monthly reports")
        return PeriodWindow(
            period=period,
            start=_month_start(year, month),
            end=_month_start(year, month + 1),
            label=f"{calendar.month_name[month]} {year}",
        )

    if period == PeriodType.QUARTERLY:
        if quarter not in IRS_QUARTERS:
            raise ValidationFailure("Quarter (1-4) is required for quarterly reports")
        first, last = IRS_QUARTERS[quarter]
        return PeriodWindow(
            period=period,
            start=_month_start(year, first),
            end=_month_start(year, last),
            label=f"Q{quarter} {year}",
        )

    return PeriodWindow(
        period=period,
        start=date(year, 1, 1),
        end=date(year + 1, 1, 1),
        label=str(year),
    )


def current_quarter(day: date) -> int:
    """IRS quarter that ``day`` falls into."""
    for quarter, (first, last) in IRS_QUARTERS.items():
        if first <= day.month < last:
            return quarter
    return 4


def booking_days(start: date, end: date | None = None, max_span_days: int = 30) -> list[date]:
    """Calendar days covered by a booking from ``start`` to ``end`` inclusive.

    A missing end, an end before the start, or a span longer than
    ``max_span_days`` all collapse to the single day ``start``.
    """
    if end is None or end <= start:
        return [start]
    span = (end - start).days
    if span > max_span_days:
        return [start]
    return [start + timedelta(days=offset) for offset in range(span + 1)]
