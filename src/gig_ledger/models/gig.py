"""Gig (one calendar day of booked work) model."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from gig_ledger.models.base import Base, TimestampMixin

# Columns that describe where a row sits in time. Everything else is copied
# verbatim when a multi-day booking is recreated over a new date range.
DATE_FIELDS = frozenset({"date", "start_date", "end_date"})
IDENTITY_FIELDS = frozenset({"id", "user_id", "created_at"})


class Gig(Base, TimestampMixin):
    """A single day of a booking.

    Multi-day bookings are stored as one row per day. Rows created together
    share ``multi_day_group_id``; older rows are grouped heuristically by
    the grouping engine.
    """

    __tablename__ = "gigs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    gig_type: Mapped[str] = mapped_column(String(100), nullable=False)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Event")
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    is_multi_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    multi_day_group_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    expected_pay: Mapped[Decimal | None] = mapped_column(nullable=True)
    actual_pay: Mapped[Decimal | None] = mapped_column(nullable=True)
    tips: Mapped[Decimal | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="upcoming")
    duties: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tax_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Expenses entered on the gig itself
    parking_expense: Mapped[Decimal | None] = mapped_column(nullable=True)
    other_expenses: Mapped[Decimal | None] = mapped_column(nullable=True)

    # "Got paid" split
    total_received: Mapped[Decimal | None] = mapped_column(nullable=True)
    reimbursed_parking: Mapped[Decimal | None] = mapped_column(nullable=True)
    reimbursed_other: Mapped[Decimal | None] = mapped_column(nullable=True)
    unreimbursed_parking: Mapped[Decimal | None] = mapped_column(nullable=True)
    unreimbursed_other: Mapped[Decimal | None] = mapped_column(nullable=True)
    got_paid_date: Mapped[dt.datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('upcoming', 'pending_payment', 'completed')",
            name="gigs_status_check",
        ),
        CheckConstraint(
            "tax_percentage IS NULL OR (tax_percentage >= 0 AND tax_percentage <= 100)",
            name="gigs_tax_percentage_check",
        ),
        Index("idx_gigs_user_date", "user_id", "date"),
        Index("idx_gigs_user_status", "user_id", "status"),
        Index("idx_gigs_group", "multi_day_group_id"),
    )

    def __repr__(self) -> str:
        return f"<Gig {self.id} {self.event_name!r} {self.date} {self.status}>"
