"""ORM models."""

from gig_ledger.models.base import Base, TimestampMixin
from gig_ledger.models.expense import Expense
from gig_ledger.models.gig import DATE_FIELDS, IDENTITY_FIELDS, Gig
from gig_ledger.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "DATE_FIELDS",
    "IDENTITY_FIELDS",
    "Expense",
    "Gig",
    "User",
]
