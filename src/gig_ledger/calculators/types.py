"""Type definitions shared by the grouping, payment and aggregation code."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gig_ledger.models import Gig


class GigStatus(str, Enum):
    """Gig status values."""

    UPCOMING = "upcoming"
    PENDING_PAYMENT = "pending_payment"
    COMPLETED = "completed"

    @classmethod
    def normalize(cls, value: str | GigStatus) -> GigStatus:
        """Accept the legacy "pending payment" spelling."""
        if isinstance(value, GigStatus):
            return value
        return cls(value.strip().lower().replace(" ", "_"))


class PeriodType(str, Enum):
    """Reporting window kinds."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


@dataclass(frozen=True)
class GigGroup:
    """Derived view of one booking: one or more day-rows of the same event.

    ``members`` is ordered by date ascending; ``members[0]`` is the source of
    financial truth because every member carries the same booking totals.
    """

    members: tuple[Gig, ...]
    start_date: date
    end_date: date
    is_multi_day: bool

    @property
    def gig_ids(self) -> list[int]:
        return sorted(g.id for g in self.members)

    @property
    def primary(self) -> Gig:
        return self.members[0]

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, gig_id: object) -> bool:
        return any(g.id == gig_id for g in self.members)


@dataclass(frozen=True)
class OtherExpenseLine:
    """One itemised non-parking expense from a payment payload."""

    amount: Decimal
    reimbursed_amount: Decimal
    business_purpose: str
    category: str


@dataclass(frozen=True)
class PaymentSplit:
    """Tax-smart split of a received payment."""

    total_received: Decimal
    taxable_income: Decimal
    parking_spent: Decimal
    parking_reimbursed: Decimal
    other_spent: Decimal
    other_reimbursed: Decimal
    unreimbursed_parking: Decimal
    unreimbursed_other: Decimal

    @property
    def deductible(self) -> Decimal:
        """Out-of-pocket expenses that reduce taxable profit."""
        return self.unreimbursed_parking + self.unreimbursed_other


@dataclass(frozen=True)
class MemberResult:
    """Outcome of one per-row operation inside a group fan-out."""

    gig_id: int
    ok: bool
    gig: Gig | None = None
    error: str | None = None

    @classmethod
    def success(cls, gig_id: int, gig: Gig | None = None) -> MemberResult:
        return cls(gig_id=gig_id, ok=True, gig=gig)

    @classmethod
    def failure(cls, gig_id: int, error: BaseException | str) -> MemberResult:
        return cls(gig_id=gig_id, ok=False, error=str(error))


@dataclass
class FanOutResult:
    """Per-row results of an operation applied to every member of a group."""

    operation: str
    results: list[MemberResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[MemberResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[MemberResult]:
        return [r for r in self.results if not r.ok]

    @property
    def all_ok(self) -> bool:
        return not self.failed

    @property
    def gigs(self) -> list[Gig]:
        return [r.gig for r in self.results if r.ok and r.gig is not None]


@dataclass(frozen=True)
class PeriodWindow:
    """Half-open date window ``[start, end)`` with a display label."""

    period: PeriodType
    start: date
    end: date
    label: str

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


@dataclass(frozen=True)
class GigTaxLine:
    """One row of the per-booking tax breakdown."""

    gig_id: int
    event_name: str
    date: date
    taxable_income: Decimal
    tax_rate: int
    tax_amount: Decimal


@dataclass(frozen=True)
class PeriodAggregate:
    """Rolled-up financial summary for one user and one window."""

    user_id: int
    window: PeriodWindow
    booking_count: int
    completed_count: int
    gross_income: Decimal
    taxable_income: Decimal
    tips: Decimal
    gross_expenses: Decimal
    reimbursements: Decimal
    net_expenses: Decimal
    business_deductions: Decimal
    total_mileage: int
    mileage_rate: Decimal
    mileage_value: Decimal
    estimated_tax: Decimal
    tax_percentage: int
    net_income: Decimal
    after_tax_income: Decimal
    projected_income: Decimal
    tax_lines: tuple[GigTaxLine, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for JSON output."""
        return {
            "user_id": self.user_id,
            "period": self.window.period.value,
            "label": self.window.label,
            "start": self.window.start.isoformat(),
            "end": self.window.end.isoformat(),
            "booking_count": self.booking_count,
            "completed_count": self.completed_count,
            "gross_income": str(self.gross_income),
            "taxable_income": str(self.taxable_income),
            "tips": str(self.tips),
            "gross_expenses": str(self.gross_expenses),
            "reimbursements": str(self.reimbursements),
            "net_expenses": str(self.net_expenses),
            "business_deductions": str(self.business_deductions),
            "total_mileage": self.total_mileage,
            "mileage_rate": str(self.mileage_rate),
            "mileage_value": str(self.mileage_value),
            "estimated_tax": str(self.estimated_tax),
            "tax_percentage": self.tax_percentage,
            "net_income": str(self.net_income),
            "after_tax_income": str(self.after_tax_income),
            "projected_income": str(self.projected_income),
            "tax_lines": [
                {
                    "gig_id": line.gig_id,
                    "event_name": line.event_name,
                    "date": line.date.isoformat(),
                    "taxable_income": str(line.taxable_income),
                    "tax_rate": line.tax_rate,
                    "tax_amount": str(line.tax_amount),
                }
                for line in self.tax_lines
            ],
        }


@dataclass(frozen=True)
class LifetimeSummary:
    """All-time counters for a user."""

    user_id: int
    booking_count: int
    total_earnings: Decimal
