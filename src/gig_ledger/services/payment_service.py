"""Payment processing: the "got paid" transition for a whole booking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession

from gig_ledger.cache import ResultCache
from gig_ledger.calculators.tax_calculator import TaxCalculator
from gig_ledger.calculators.types import FanOutResult, GigStatus, MemberResult, PaymentSplit
from gig_ledger.config import Settings, get_settings
from gig_ledger.errors import PartialUpdateFailure
from gig_ledger.schemas import PaymentPayload, parse
from gig_ledger.services.group_resolver import resolve_group
from gig_ledger.services.record_store import RecordStore
from gig_ledger.services.state_machine import GigStateMachine

if TYPE_CHECKING:
    from gig_ledger.models import Expense, Gig

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    """Outcome of a processed payment."""

    gig_id: int
    split: PaymentSplit
    tax_percentage: int
    fan_out: FanOutResult
    expenses: list[Expense] = field(default_factory=list)
    skipped_expenses: int = 0

    @property
    def gigs(self) -> list[Gig]:
        return self.fan_out.gigs


class PaymentProcessor:
    """Applies a received payment to every day-row of a booking.

    The client pays once for the whole booking, so every member row carries
    the same totals. Aggregation later counts the booking once through the
    grouping engine; the totals are never divided across days.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.store = RecordStore(session, cache=cache, settings=self.settings)
        self.tax = TaxCalculator(self.settings.default_tax_percentage)

    async def resolve_group(self, gig: Gig) -> list[Gig]:
        """Day-rows of the booking that contains ``gig``.

        A first payment only considers unpaid rows, so an earlier paid
        booking of the same event is never overwritten. A re-recorded
        payment starts from a completed row and takes the whole booking,
        so every day keeps identical totals.
        """
        open_only = GigStateMachine.is_open(gig.status)
        group = await resolve_group(self.store, gig, open_only=open_only)
        return list(group.members)

    async def process_payment(
        self,
        gig_id: int,
        payload: PaymentPayload | dict[str, Any],
        *,
        user_id: int,
    ) -> PaymentResult:
        """Record a payment for the booking containing ``gig_id``.

        Args:
            gig_id: Any day-row of the booking
            payload: Payment details (validated here)
            user_id: Owner of the gig

        Returns:
            PaymentResult with the split and per-row results

        Raises:
            ValidationFailure: If the payload is malformed
            NotFoundError: If the gig is missing or owned by another user
            PartialUpdateFailure: If some rows could not be updated
        """
        payment = parse(PaymentPayload, payload, "payment")
        gig = await self.store.get_owned_gig(gig_id, user_id)

        members = await self.resolve_group(gig)
        for member in members:
            GigStateMachine.validate_transition(member.status, GigStatus.COMPLETED.value)

        lines = [item.to_line() for item in payment.other_expenses]
        split = self.tax.split_payment(
            total_received=payment.total_received,
            parking_spent=payment.parking_spent,
            parking_reimbursed=payment.parking_reimbursed,
            other_lines=lines,
            other_reimbursed=payment.other_reimbursed,
        )
        if payment.tax_percentage is not None:
            tax_percentage = payment.tax_percentage
        else:
            tax_percentage = await self.store.get_default_tax_percentage(user_id)

        result = PaymentResult(
            gig_id=gig.id,
            split=split,
            tax_percentage=tax_percentage,
            fan_out=FanOutResult(operation="process_payment"),
        )

        target_id, target_date, event_name = gig.id, gig.date, gig.event_name
        merchant = gig.client_name or "Unknown"

        # Line items are attached to the row the payment was entered on.
        # Each write runs in its own savepoint so one failure leaves the
        # session usable for the rest.
        for line in lines:
            if line.amount <= 0:
                continue
            try:
                async with self.session.begin_nested():
                    expense = await self.store.create_expense(
                        user_id,
                        date=target_date,
                        amount=line.amount,
                        merchant=merchant,
                        business_purpose=line.business_purpose,
                        category=line.category,
                        gig_id=target_id,
                        reimbursed_amount=line.reimbursed_amount,
                    )
            except Exception:
                logger.exception(
                    "Failed to record expense '%s' for gig %s", line.business_purpose, target_id
                )
                result.skipped_expenses += 1
            else:
                result.expenses.append(expense)

        patch = {
            "status": GigStatus.COMPLETED.value,
            "actual_pay": split.taxable_income,
            "total_received": split.total_received,
            "reimbursed_parking": split.parking_reimbursed,
            "reimbursed_other": split.other_reimbursed,
            "unreimbursed_parking": split.unreimbursed_parking,
            "unreimbursed_other": split.unreimbursed_other,
            "parking_expense": split.parking_spent,
            "other_expenses": split.other_spent,
            "mileage": payment.mileage,
            "tax_percentage": tax_percentage,
            "payment_method": payment.payment_method,
            "got_paid_date": datetime.now(timezone.utc),
        }

        for member_id in [m.id for m in members]:
            try:
                async with self.session.begin_nested():
                    updated = await self.store.update_gig(member_id, patch)
            except Exception as exc:
                logger.exception("Failed to apply payment to gig %s", member_id)
                result.fan_out.results.append(MemberResult.failure(member_id, exc))
                continue
            if updated is None:
                result.fan_out.results.append(MemberResult.failure(member_id, "gig disappeared"))
            else:
                result.fan_out.results.append(MemberResult.success(member_id, updated))

        self.store.cache.invalidate_user(user_id)

        if not result.fan_out.all_ok:
            raise PartialUpdateFailure("process_payment", result.fan_out.results)

        logger.info(
            "Payment processed for '%s': %d gig(s) updated, taxable income %s",
            event_name,
            len(result.fan_out.succeeded),
            split.taxable_income,
        )
        return result
