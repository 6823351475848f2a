"""Business expense model."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gig_ledger.models.base import Base, TimestampMixin


class Expense(Base, TimestampMixin):
    """A business expense, optionally linked to a gig.

    ``reimbursed_amount`` may exceed ``amount``; the out-of-pocket value then
    goes negative instead of being rejected.
    """

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    merchant: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_purpose: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    gig_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("gigs.id", ondelete="SET NULL"), nullable=True
    )
    reimbursed_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    __table_args__ = (
        Index("idx_expenses_user_date", "user_id", "date"),
        Index("idx_expenses_gig_id", "gig_id"),
    )

    @property
    def out_of_pocket(self) -> Decimal:
        """Amount not paid back by the client (negative when over-reimbursed)."""
        return (self.amount or Decimal("0")) - (self.reimbursed_amount or Decimal("0"))
