"""User model (only the fields the ledger needs)."""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gig_ledger.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Owner of gigs and expenses."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # None means "use the configured default"
    default_tax_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True, default=23)
