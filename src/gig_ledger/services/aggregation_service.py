"""Period aggregation shared by the calendar, dashboard and report views."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from gig_ledger.cache import ResultCache, dashboard_key
from gig_ledger.calculators.grouping import group_gigs
from gig_ledger.calculators.periods import resolve_window
from gig_ledger.calculators.tax_calculator import ZERO, TaxCalculator, round_money, to_decimal
from gig_ledger.calculators.types import (
    GigStatus,
    GigTaxLine,
    LifetimeSummary,
    PeriodAggregate,
    PeriodType,
)
from gig_ledger.config import Settings, get_settings
from gig_ledger.services.record_store import RecordStore
from gig_ledger.services.state_machine import GigStateMachine

if TYPE_CHECKING:
    from gig_ledger.calculators.types import GigGroup
    from gig_ledger.models import Expense, Gig

logger = logging.getLogger(__name__)

PARKING_CATEGORY = "Work Travel"
OTHER_CATEGORY = "Gig Supplies"


@dataclass(frozen=True)
class ExpenseLine:
    """An expense counted in a period, stored or derived from a paid gig."""

    amount: Decimal
    reimbursed_amount: Decimal
    category: str
    gig_id: int | None = None


def _is_completed(gig: Gig) -> bool:
    return GigStatus.normalize(gig.status) == GigStatus.COMPLETED


def _gig_expense_lines(
    groups: Iterable[GigGroup], itemised_gig_ids: set[int]
) -> list[ExpenseLine]:
    """Parking and other spend recorded on paid bookings.

    A booking's "other" total is skipped when its line items already exist
    as stored expenses linked to one of its rows.
    """
    lines: list[ExpenseLine] = []
    for group in groups:
        gig = group.primary
        parking = to_decimal(gig.parking_expense)
        if parking > 0:
            lines.append(
                ExpenseLine(parking, to_decimal(gig.reimbursed_parking), PARKING_CATEGORY, gig.id)
            )
        other = to_decimal(gig.other_expenses)
        if other > 0 and not itemised_gig_ids.intersection(group.gig_ids):
            lines.append(
                ExpenseLine(other, to_decimal(gig.reimbursed_other), OTHER_CATEGORY, gig.id)
            )
    return lines


def _stored_expense_lines(expenses: Iterable[Expense]) -> list[ExpenseLine]:
    return [
        ExpenseLine(
            to_decimal(e.amount), to_decimal(e.reimbursed_amount), e.category, e.gig_id
        )
        for e in expenses
    ]


class PeriodAggregationService:
    """Builds PeriodAggregate summaries for one user.

    Rows are grouped into bookings before anything is summed, and only the
    earliest row of each booking is read, so a three-day booking paid $100
    contributes $100.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.store = RecordStore(session, cache=cache, settings=self.settings)
        self.tax = TaxCalculator(self.settings.default_tax_percentage)

    @property
    def cache(self) -> ResultCache:
        return self.store.cache

    async def aggregate_period(
        self,
        user_id: int,
        period: PeriodType | str,
        year: int,
        month: int | None = None,
        quarter: int | None = None,
    ) -> PeriodAggregate:
        """Summarise a user's bookings and expenses for one window.

        Args:
            user_id: Owner of the rows
            period: monthly, quarterly (IRS estimated-tax periods) or annual
            year: Calendar year
            month: 1-12, required for monthly
            quarter: 1-4, required for quarterly

        Raises:
            ValidationFailure: If the period arguments are inconsistent
        """
        window = resolve_window(period, year, month=month, quarter=quarter)
        selector = month if window.period == PeriodType.MONTHLY else quarter
        key = dashboard_key(user_id, window.period.value, year, selector or "all")

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        gigs = await self.store.get_gigs_by_date_range(user_id, window.start, window.end)
        expenses = await self.store.get_expenses_by_date_range(user_id, window.start, window.end)
        user_default = await self.store.get_default_tax_percentage(user_id)

        groups = group_gigs(gigs)
        completed_groups = [g for g in groups if _is_completed(g.primary)]
        completed = [g.primary for g in completed_groups]
        open_bookings = [
            g.primary for g in groups if GigStateMachine.is_open(g.primary.status)
        ]

        gross_income = sum((self.tax.gross_income(g) for g in completed), ZERO)
        taxable_income = sum((self.tax.taxable_income(g) for g in completed), ZERO)
        tips = sum((to_decimal(g.tips) for g in completed), ZERO)
        business_deductions = sum(
            (
                to_decimal(g.unreimbursed_parking) + to_decimal(g.unreimbursed_other)
                for g in completed
            ),
            ZERO,
        )

        itemised_gig_ids = {e.gig_id for e in expenses if e.gig_id is not None}
        lines = _stored_expense_lines(expenses) + _gig_expense_lines(
            completed_groups, itemised_gig_ids
        )
        gross_expenses = sum((line.amount for line in lines), ZERO)
        reimbursements = sum((line.reimbursed_amount for line in lines), ZERO)
        net_expenses = gross_expenses - reimbursements

        total_mileage = sum(g.mileage or 0 for g in completed)
        mileage_value = round_money(Decimal(total_mileage) * self.settings.mileage_rate)

        tax_lines = []
        for gig in completed:
            income, rate, amount = self.tax.tax_for(gig, user_default)
            tax_lines.append(
                GigTaxLine(
                    gig_id=gig.id,
                    event_name=gig.event_name,
                    date=gig.date,
                    taxable_income=income,
                    tax_rate=rate,
                    tax_amount=amount,
                )
            )
        estimated_tax = sum((line.tax_amount for line in tax_lines), ZERO)
        net_income = taxable_income - net_expenses - mileage_value
        expected_open = sum((to_decimal(g.expected_pay) for g in open_bookings), ZERO)

        aggregate = PeriodAggregate(
            user_id=user_id,
            window=window,
            booking_count=len(groups),
            completed_count=len(completed),
            gross_income=gross_income,
            taxable_income=taxable_income,
            tips=tips,
            gross_expenses=gross_expenses,
            reimbursements=reimbursements,
            net_expenses=net_expenses,
            business_deductions=business_deductions,
            total_mileage=total_mileage,
            mileage_rate=self.settings.mileage_rate,
            mileage_value=mileage_value,
            estimated_tax=estimated_tax,
            tax_percentage=user_default,
            net_income=net_income,
            after_tax_income=net_income - estimated_tax,
            projected_income=gross_income + expected_open,
            tax_lines=tuple(tax_lines),
        )
        self.cache.set(key, aggregate, self.settings.aggregate_cache_ttl)
        logger.debug(
            "Aggregated %s for user %s: %d booking(s) from %d row(s)",
            window.label,
            user_id,
            len(groups),
            len(gigs),
        )
        return aggregate

    async def lifetime_summary(self, user_id: int) -> LifetimeSummary:
        """Booking count and earnings over all of a user's rows."""
        key = dashboard_key(user_id, "lifetime")
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        gigs, _ = await self.store.get_gigs_by_user(user_id)
        groups = group_gigs(gigs)
        # A zero actual pay means "not entered yet", so fall back to expected
        total = sum(
            (
                to_decimal(g.primary.actual_pay) or to_decimal(g.primary.expected_pay)
                for g in groups
            ),
            ZERO,
        )
        summary = LifetimeSummary(user_id=user_id, booking_count=len(groups), total_earnings=total)
        self.cache.set(key, summary, self.settings.aggregate_cache_ttl)
        return summary
