"""Tax-smart money math for gigs.

Reimbursements are pass-through money, not income: a client who pays $500
including $40 of parking reimbursement has paid $460 of taxable income.
Unreimbursed spend is what the worker can deduct.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from gig_ledger.calculators.types import OtherExpenseLine, PaymentSplit

if TYPE_CHECKING:
    from gig_ledger.models import Gig

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a nullable numeric column value to Decimal."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def has_payment_split(gig: Gig) -> bool:
    """True when the gig went through the "got paid" flow."""
    return to_decimal(gig.total_received) > 0


class TaxCalculator:
    """Per-gig income and tax estimates.

    The rate for a gig is its own ``tax_percentage`` when set (0 is a valid
    rate for untaxed cash work), otherwise the user's default, otherwise the
    configured default.
    """

    def __init__(self, default_tax_percentage: int = 23):
        self.default_tax_percentage = default_tax_percentage

    def resolve_rate(self, gig_rate: int | None, user_default: int | None = None) -> int:
        if gig_rate is not None:
            return int(gig_rate)
        if user_default is not None:
            return int(user_default)
        return self.default_tax_percentage

    @staticmethod
    def gross_income(gig: Gig) -> Decimal:
        """Money received for the booking including reimbursements and tips."""
        received = to_decimal(gig.total_received)
        base = received if received > 0 else to_decimal(gig.actual_pay)
        return base + to_decimal(gig.tips)

    @staticmethod
    def taxable_income(gig: Gig) -> Decimal:
        """Income minus reimbursements, plus tips.

        Rows that predate the payment split only carry ``actual_pay``.
        """
        tips = to_decimal(gig.tips)
        if has_payment_split(gig):
            return (
                to_decimal(gig.total_received)
                - to_decimal(gig.reimbursed_parking)
                - to_decimal(gig.reimbursed_other)
                + tips
            )
        return to_decimal(gig.actual_pay) + tips

    def tax_for(self, gig: Gig, user_default: int | None = None) -> tuple[Decimal, int, Decimal]:
        """Return ``(taxable_income, rate, tax_amount)`` for one gig."""
        income = self.taxable_income(gig)
        rate = self.resolve_rate(gig.tax_percentage, user_default)
        return income, rate, round_money(income * Decimal(rate) / Decimal(100))

    def total_tax(self, gigs: Iterable[Gig], user_default: int | None = None) -> Decimal:
        """Sum of per-gig taxes, each at its own rate."""
        return sum((self.tax_for(g, user_default)[2] for g in gigs), ZERO)

    @staticmethod
    def split_payment(
        total_received: Decimal,
        parking_spent: Decimal,
        parking_reimbursed: Decimal,
        other_lines: Iterable[OtherExpenseLine] = (),
        other_reimbursed: Decimal = ZERO,
    ) -> PaymentSplit:
        """Split a received payment into taxable income and deductions.

        When line items carry no reimbursement at all, the payload-level
        ``other_reimbursed`` total is used instead.
        """
        lines = list(other_lines)
        other_spent = sum((line.amount for line in lines), ZERO)
        itemised_reimbursed = sum((line.reimbursed_amount for line in lines), ZERO)
        actual_other_reimbursed = (
            itemised_reimbursed if itemised_reimbursed > 0 else other_reimbursed
        )

        return PaymentSplit(
            total_received=total_received,
            taxable_income=total_received - parking_reimbursed - actual_other_reimbursed,
            parking_spent=parking_spent,
            parking_reimbursed=parking_reimbursed,
            other_spent=other_spent,
            other_reimbursed=actual_other_reimbursed,
            unreimbursed_parking=max(ZERO, parking_spent - parking_reimbursed),
            unreimbursed_other=max(ZERO, other_spent - actual_other_reimbursed),
        )
