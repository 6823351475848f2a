"""Tests for period aggregation."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from gig_ledger.cache import dashboard_key
from gig_ledger.errors import ValidationFailure
from gig_ledger.services.aggregation_service import PeriodAggregationService
from gig_ledger.services.payment_service import PaymentProcessor

START = date(2025, 3, 1)


@pytest.fixture
def aggregator(session, cache, settings):
    return PeriodAggregationService(session, cache=cache, settings=settings)


@pytest.fixture
def processor(session, cache, settings):
    return PaymentProcessor(session, cache=cache, settings=settings)


def paid(**fields):
    """Column values of a booking that went through the payment flow."""
    values = {
        "status": "completed",
        "total_received": Decimal("100"),
        "actual_pay": Decimal("100"),
        "reimbursed_parking": Decimal("0"),
        "reimbursed_other": Decimal("0"),
    }
    values.update(fields)
    return values


class TestNoDoubleCounting:
    """A multi-day booking counts once."""

    async def test_three_day_booking_counts_once(self, aggregator, make_gig, user):
        for i in range(3):
            await make_gig(START + timedelta(days=i), **paid(mileage=20))

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.booking_count == 1
        assert aggregate.completed_count == 1
        assert aggregate.gross_income == Decimal("100")
        assert aggregate.taxable_income == Decimal("100")
        assert aggregate.total_mileage == 20
        assert aggregate.mileage_value == Decimal("14.00")

    async def test_after_payment_flow(self, aggregator, processor, make_gig, user):
        gigs = [await make_gig(START + timedelta(days=i)) for i in range(3)]
        await processor.process_payment(
            gigs[0].id,
            {
                "total_received": "500",
                "parking_spent": "40",
                "parking_reimbursed": "40",
                "other_expenses": [{"amount": "20"}],
                "tax_percentage": 20,
            },
            user_id=user.id,
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.booking_count == 1
        assert aggregate.gross_income == Decimal("500")
        assert aggregate.taxable_income == Decimal("460")
        # Parking from the gig plus the stored line item; no synthetic duplicate
        assert aggregate.gross_expenses == Decimal("60")
        assert aggregate.reimbursements == Decimal("40")
        assert aggregate.net_expenses == Decimal("20")
        assert aggregate.business_deductions == Decimal("20")
        assert aggregate.estimated_tax == Decimal("92.00")

    async def test_corrected_payment_reaches_the_total(
        self, aggregator, processor, make_gig, user
    ):
        gigs = [await make_gig(START + timedelta(days=i)) for i in range(3)]
        await processor.process_payment(gigs[0].id, {"total_received": "300"}, user_id=user.id)
        await processor.process_payment(gigs[1].id, {"total_received": "900"}, user_id=user.id)

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.booking_count == 1
        assert aggregate.taxable_income == Decimal("900")


class TestIncomeAndTax:
    """Income, tax and derived figures."""

    async def test_per_gig_tax_rates(self, aggregator, make_gig, user):
        """$100 at 20% plus $200 at 30% is $80 regardless of the user default."""
        await make_gig(START, **paid(tax_percentage=20))
        await make_gig(
            START + timedelta(days=10),
            event_name="Auto Show",
            **paid(total_received=Decimal("200"), actual_pay=Decimal("200"), tax_percentage=30),
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.estimated_tax == Decimal("80.00")
        assert aggregate.tax_percentage == 23
        assert [line.tax_rate for line in aggregate.tax_lines] == [30, 20]

    async def test_reimbursements_are_not_taxable(self, aggregator, make_gig, user):
        await make_gig(
            START,
            **paid(
                total_received=Decimal("500"),
                reimbursed_parking=Decimal("40"),
                reimbursed_other=Decimal("10"),
                tips=Decimal("25"),
                tax_percentage=10,
            ),
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.gross_income == Decimal("525")
        assert aggregate.taxable_income == Decimal("475")
        assert aggregate.tips == Decimal("25")
        assert aggregate.estimated_tax == Decimal("47.50")

    async def test_legacy_rows_use_actual_pay(self, aggregator, make_gig, user):
        await make_gig(START, status="completed", actual_pay=Decimal("120"), tips=Decimal("5"))

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.gross_income == Decimal("125")
        assert aggregate.taxable_income == Decimal("125")

    async def test_open_bookings_only_projected(self, aggregator, make_gig, user):
        await make_gig(START, **paid())
        await make_gig(
            START + timedelta(days=5),
            event_name="Auto Show",
            expected_pay=Decimal("300"),
        )
        await make_gig(
            START + timedelta(days=6),
            event_name="Auto Show",
            expected_pay=Decimal("300"),
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.booking_count == 2
        assert aggregate.completed_count == 1
        assert aggregate.gross_income == Decimal("100")
        assert aggregate.projected_income == Decimal("400")

    async def test_net_and_after_tax_income(self, aggregator, store, make_gig, user):
        await make_gig(START, **paid(mileage=10, tax_percentage=10))
        await store.create_expense(
            user.id,
            date=START,
            amount=Decimal("30"),
            reimbursed_amount=Decimal("10"),
            business_purpose="Tape",
            category="Gig Supplies",
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        # 100 taxable - 20 net expenses - 7.00 mileage
        assert aggregate.net_income == Decimal("73.00")
        assert aggregate.after_tax_income == Decimal("63.00")


class TestExpenses:
    """Stored and gig-level expenses."""

    async def test_synthetic_expenses_from_completed_gigs(self, aggregator, make_gig, user):
        await make_gig(
            START,
            **paid(
                parking_expense=Decimal("15"),
                reimbursed_parking=Decimal("5"),
                other_expenses=Decimal("8"),
            ),
        )
        # Open bookings contribute no expenses
        await make_gig(
            START + timedelta(days=10), event_name="Auto Show", parking_expense=Decimal("50")
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.gross_expenses == Decimal("23")
        assert aggregate.reimbursements == Decimal("5")
        assert aggregate.net_expenses == Decimal("18")

    async def test_over_reimbursed_expense_goes_negative(self, aggregator, store, user):
        await store.create_expense(
            user.id,
            date=START,
            amount=Decimal("10"),
            reimbursed_amount=Decimal("25"),
            business_purpose="Parking",
            category="Work Travel",
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.net_expenses == Decimal("-15")

    async def test_window_excludes_other_months(self, aggregator, store, make_gig, user):
        await make_gig(date(2025, 2, 28), **paid())
        await make_gig(date(2025, 4, 1), event_name="April", **paid())
        await store.create_expense(
            user.id,
            date=date(2025, 4, 1),
            amount=Decimal("10"),
            business_purpose="Parking",
            category="Work Travel",
        )

        aggregate = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)

        assert aggregate.booking_count == 0
        assert aggregate.gross_income == Decimal("0")
        assert aggregate.gross_expenses == Decimal("0")


class TestPeriods:
    """Window selection."""

    async def test_quarter_uses_irs_months(self, aggregator, make_gig, user):
        await make_gig(date(2025, 4, 15), **paid())
        await make_gig(date(2025, 5, 31), event_name="May", **paid())
        await make_gig(date(2025, 6, 1), event_name="June", **paid())

        aggregate = await aggregator.aggregate_period(user.id, "quarterly", 2025, quarter=2)

        assert aggregate.window.label == "Q2 2025"
        assert aggregate.booking_count == 2

    async def test_annual(self, aggregator, make_gig, user):
        await make_gig(date(2025, 1, 1), **paid())
        await make_gig(date(2025, 12, 31), event_name="NYE", **paid())

        aggregate = await aggregator.aggregate_period(user.id, "annual", 2025)

        assert aggregate.booking_count == 2
        assert aggregate.to_dict()["label"] == "2025"

    async def test_invalid_period(self, aggregator, user):
        with pytest.raises(ValidationFailure):
            await aggregator.aggregate_period(user.id, "monthly", 2025)


class TestAggregateCache:
    """Aggregates are cached until the user's rows change."""

    async def test_cached_until_payment(self, aggregator, processor, cache, make_gig, user):
        gig = await make_gig(START, expected_pay=Decimal("250"))

        before = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)
        assert before.gross_income == Decimal("0")
        assert cache.get(dashboard_key(user.id, "monthly", 2025, 3)) is before
        assert await aggregator.aggregate_period(user.id, "monthly", 2025, month=3) is before

        await processor.process_payment(gig.id, {"total_received": "250"}, user_id=user.id)

        after = await aggregator.aggregate_period(user.id, "monthly", 2025, month=3)
        assert after is not before
        assert after.gross_income == Decimal("250")

    async def test_entry_expires(self, aggregator, clock, user):
        first = await aggregator.aggregate_period(user.id, "annual", 2025)
        clock.advance(301)

        assert await aggregator.aggregate_period(user.id, "annual", 2025) is not first


class TestLifetimeSummary:
    """All-time counters."""

    async def test_counts_bookings_once(self, aggregator, make_gig, user):
        for i in range(3):
            await make_gig(START + timedelta(days=i), actual_pay=Decimal("300"))
        await make_gig(date(2025, 6, 1), event_name="June", expected_pay=Decimal("150"))
        await make_gig(
            date(2025, 7, 1), event_name="July", actual_pay=Decimal("0"), expected_pay=Decimal("80")
        )

        summary = await aggregator.lifetime_summary(user.id)

        assert summary.booking_count == 3
        assert summary.total_earnings == Decimal("530")
