"""Tests for reporting windows and booking day ranges."""

from datetime import date

import pytest

from gig_ledger.calculators.periods import booking_days, current_quarter, resolve_window
from gig_ledger.calculators.types import PeriodType
from gig_ledger.errors import ValidationFailure


class TestResolveWindow:
    """Test window resolution."""

    def test_monthly(self):
        window = resolve_window("monthly", 2025, month=3)

        assert window.period == PeriodType.MONTHLY
        assert (window.start, window.end) == (date(2025, 3, 1), date(2025, 4, 1))
        assert window.label == "March 2025"

    def test_december_rolls_into_next_year(self):
        window = resolve_window(PeriodType.MONTHLY, 2025, month=12)

        assert window.end == date(2026, 1, 1)

    @pytest.mark.parametrize(
        "quarter,start,end",
        [
            (1, date(2025, 1, 1), date(2025, 4, 1)),
            (2, date(2025, 4, 1), date(2025, 6, 1)),
            (3, date(2025, 6, 1), date(2025, 9, 1)),
            (4, date(2025, 9, 1), date(2026, 1, 1)),
        ],
    )
    def test_irs_quarters(self, quarter, start, end):
        """Quarters follow the IRS estimated-tax income periods."""
        window = resolve_window("quarterly", 2025, quarter=quarter)

        assert (window.start, window.end) == (start, end)
        assert window.label == f"Q{quarter} 2025"

    def test_annual(self):
        window = resolve_window("annual", 2025)

        assert (window.start, window.end, window.label) == (
            date(2025, 1, 1),
            date(2026, 1, 1),
            "2025",
        )

    def test_window_is_half_open(self):
        window = resolve_window("monthly", 2025, month=3)

        assert window.contains(date(2025, 3, 1)) is True
        assert window.contains(date(2025, 3, 31)) is True
        assert window.contains(date(2025, 4, 1)) is False

    @pytest.mark.parametrize(
        "period,kwargs",
        [
            ("monthly", {}),
            ("monthly", {"month": 13}),
            ("quarterly", {"quarter": 0}),
            ("quarterly", {}),
            ("weekly", {}),
        ],
    )
    def test_invalid_requests(self, period, kwargs):
        with pytest.raises(ValidationFailure):
            resolve_window(period, 2025, **kwargs)

    @pytest.mark.parametrize(
        "day,quarter",
        [
            (date(2025, 3, 31), 1),
            (date(2025, 4, 1), 2),
            (date(2025, 5, 31), 2),
            (date(2025, 6, 1), 3),
            (date(2025, 9, 1), 4),
            (date(2025, 12, 31), 4),
        ],
    )
    def test_current_quarter(self, day, quarter):
        assert current_quarter(day) == quarter


class TestBookingDays:
    """Test expansion of a booking into calendar days."""

    def test_single_day(self):
        assert booking_days(date(2025, 3, 1)) == [date(2025, 3, 1)]

    def test_inclusive_range(self):
        assert booking_days(date(2025, 2, 27), date(2025, 3, 2)) == [
            date(2025, 2, 27),
            date(2025, 2, 28),
            date(2025, 3, 1),
            date(2025, 3, 2),
        ]

    def test_end_before_start_collapses(self):
        assert booking_days(date(2025, 3, 5), date(2025, 3, 1)) == [date(2025, 3, 5)]

    def test_thirty_day_span_is_allowed(self):
        assert len(booking_days(date(2025, 3, 1), date(2025, 3, 31))) == 31

    def test_longer_span_collapses_to_start(self):
        assert booking_days(date(2025, 3, 1), date(2025, 4, 1)) == [date(2025, 3, 1)]
