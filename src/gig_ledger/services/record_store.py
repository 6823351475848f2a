"""Record store adapter: read/write access to gig, expense and user rows.

Every mutation invalidates the owning user's cached gig lists and dashboard
aggregates. Methods flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gig_ledger.cache import ResultCache, get_cache, gig_list_key
from gig_ledger.calculators.types import GigStatus
from gig_ledger.config import Settings, get_settings
from gig_ledger.errors import NotFoundError
from gig_ledger.models import Expense, Gig, User

DEFAULT_LIMIT = 10000

_GIG_COLUMNS = frozenset(Gig.__table__.columns.keys())
_EXPENSE_COLUMNS = frozenset(Expense.__table__.columns.keys())


def _check_columns(patch: dict[str, Any], allowed: frozenset[str], entity: str) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unknown {entity} field(s): {sorted(unknown)}")


class RecordStore:
    """Async store for the rows the ledger engine works on."""

    def __init__(
        self,
        session: AsyncSession,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.cache = cache if cache is not None else get_cache()
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def create_user(self, email: str, **fields: Any) -> User:
        user = User(email=email, **fields)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_default_tax_percentage(self, user_id: int) -> int:
        """User's default rate, falling back to the configured one."""
        user = await self.get_user(user_id)
        if user is not None and user.default_tax_percentage is not None:
            return user.default_tax_percentage
        return self.settings.default_tax_percentage

    # ------------------------------------------------------------------
    # Gigs
    # ------------------------------------------------------------------

    async def get_gig(self, gig_id: int) -> Gig | None:
        return await self.session.get(Gig, gig_id)

    async def get_owned_gig(self, gig_id: int, user_id: int) -> Gig:
        """Load a gig, raising NotFoundError if missing or owned by someone else."""
        gig = await self.get_gig(gig_id)
        if gig is None or gig.user_id != user_id:
            raise NotFoundError("Gig", gig_id, user_id)
        return gig

    async def get_gigs_by_user(
        self, user_id: int, limit: int = DEFAULT_LIMIT, offset: int = 0
    ) -> tuple[list[Gig], int]:
        """Page through a user's gigs, newest first. Returns ``(rows, total)``.

        The cache holds the page's ids and the total, never ORM instances,
        so a hit is loaded into this store's own session.
        """
        key = gig_list_key(user_id, limit, offset)
        cached = self.cache.get(key)
        if cached is not None:
            ids, total = cached
            return await self._get_gigs_by_ids(ids), total

        total = await self.session.scalar(
            select(func.count()).select_from(Gig).where(Gig.user_id == user_id)
        )
        result = await self.session.execute(
            select(Gig)
            .where(Gig.user_id == user_id)
            .order_by(Gig.date.desc(), Gig.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = list(result.scalars().all())
        self.cache.set(key, ([g.id for g in rows], total or 0), self.settings.gig_list_cache_ttl)
        return rows, total or 0

    async def _get_gigs_by_ids(self, ids: list[int]) -> list[Gig]:
        if not ids:
            return []
        result = await self.session.execute(select(Gig).where(Gig.id.in_(ids)))
        by_id = {g.id: g for g in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def get_gigs_by_date_range(self, user_id: int, start: date, end: date) -> list[Gig]:
        """Gigs dated in ``[start, end)``, oldest first."""
        result = await self.session.execute(
            select(Gig)
            .where(Gig.user_id == user_id, Gig.date >= start, Gig.date < end)
            .order_by(Gig.date, Gig.id)
        )
        return list(result.scalars().all())

    async def get_gigs_by_group_id(self, user_id: int, multi_day_group_id: str) -> list[Gig]:
        result = await self.session.execute(
            select(Gig)
            .where(Gig.user_id == user_id, Gig.multi_day_group_id == multi_day_group_id)
            .order_by(Gig.date, Gig.id)
        )
        return list(result.scalars().all())

    async def get_gigs_matching(
        self,
        user_id: int,
        event_name: str,
        client_name: str,
        gig_type: str,
        open_only: bool = False,
    ) -> list[Gig]:
        """Gigs with the same booking identity, optionally only unpaid ones."""
        query = select(Gig).where(
            Gig.user_id == user_id,
            Gig.event_name == event_name,
            Gig.client_name == client_name,
            Gig.gig_type == gig_type,
        )
        if open_only:
            query = query.where(Gig.status != GigStatus.COMPLETED.value)
        result = await self.session.execute(query.order_by(Gig.date, Gig.id))
        return list(result.scalars().all())

    async def get_gigs_with_status(self, user_id: int, status: GigStatus) -> list[Gig]:
        result = await self.session.execute(
            select(Gig)
            .where(Gig.user_id == user_id, Gig.status == status.value)
            .order_by(Gig.date, Gig.id)
        )
        return list(result.scalars().all())

    async def create_gig(self, user_id: int, **fields: Any) -> Gig:
        _check_columns(fields, _GIG_COLUMNS, "gig")
        gig = Gig(user_id=user_id, **fields)
        self.session.add(gig)
        await self.session.flush()
        self.cache.invalidate_user(user_id)
        return gig

    async def update_gig(self, gig_id: int, patch: dict[str, Any]) -> Gig | None:
        """Apply ``patch`` to one gig. Returns None if the gig is gone."""
        _check_columns(patch, _GIG_COLUMNS - {"id", "user_id"}, "gig")
        gig = await self.get_gig(gig_id)
        if gig is None:
            return None
        for name, value in patch.items():
            setattr(gig, name, value)
        await self.session.flush()
        self.cache.invalidate_user(gig.user_id)
        return gig

    async def delete_gig(self, gig_id: int) -> bool:
        """Delete a gig and the expenses linked to it."""
        gig = await self.get_gig(gig_id)
        if gig is None:
            return False
        await self.session.execute(delete(Expense).where(Expense.gig_id == gig_id))
        await self.session.delete(gig)
        await self.session.flush()
        self.cache.invalidate_user(gig.user_id)
        return True

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    async def get_expense(self, expense_id: int) -> Expense | None:
        return await self.session.get(Expense, expense_id)

    async def get_expenses_by_user(
        self, user_id: int, limit: int = DEFAULT_LIMIT, offset: int = 0
    ) -> tuple[list[Expense], int]:
        total = await self.session.scalar(
            select(func.count()).select_from(Expense).where(Expense.user_id == user_id)
        )
        result = await self.session.execute(
            select(Expense)
            .where(Expense.user_id == user_id)
            .order_by(Expense.date.desc(), Expense.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_expenses_by_date_range(
        self, user_id: int, start: date, end: date
    ) -> list[Expense]:
        """Expenses dated in ``[start, end)``, oldest first."""
        result = await self.session.execute(
            select(Expense)
            .where(Expense.user_id == user_id, Expense.date >= start, Expense.date < end)
            .order_by(Expense.date, Expense.id)
        )
        return list(result.scalars().all())

    async def get_expenses_for_gigs(self, gig_ids: Iterable[int]) -> list[Expense]:
        ids = list(gig_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(Expense).where(Expense.gig_id.in_(ids)).order_by(Expense.id)
        )
        return list(result.scalars().all())

    async def create_expense(self, user_id: int, **fields: Any) -> Expense:
        _check_columns(fields, _EXPENSE_COLUMNS, "expense")
        expense = Expense(user_id=user_id, **fields)
        self.session.add(expense)
        await self.session.flush()
        self.cache.invalidate_user(user_id)
        return expense

    async def update_expense(self, expense_id: int, patch: dict[str, Any]) -> Expense | None:
        _check_columns(patch, _EXPENSE_COLUMNS - {"id", "user_id"}, "expense")
        expense = await self.get_expense(expense_id)
        if expense is None:
            return None
        for name, value in patch.items():
            setattr(expense, name, value)
        await self.session.flush()
        self.cache.invalidate_user(expense.user_id)
        return expense

    async def delete_expense(self, expense_id: int) -> bool:
        expense = await self.get_expense(expense_id)
        if expense is None:
            return False
        await self.session.delete(expense)
        await self.session.flush()
        self.cache.invalidate_user(expense.user_id)
        return True
