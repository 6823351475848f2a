"""Pure calculation code: grouping, tax split and reporting windows."""

from gig_ledger.calculators.grouping import find_group, flatten, group_gigs, primary_members
from gig_ledger.calculators.periods import booking_days, resolve_window
from gig_ledger.calculators.tax_calculator import TaxCalculator

__all__ = [
    "booking_days",
    "find_group",
    "flatten",
    "group_gigs",
    "primary_members",
    "resolve_window",
    "TaxCalculator",
]
