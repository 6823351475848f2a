"""Booking lifecycle: create, re-date, delete and status promotion."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession

from gig_ledger.cache import ResultCache
from gig_ledger.calculators.periods import booking_days
from gig_ledger.calculators.types import FanOutResult, GigStatus, MemberResult
from gig_ledger.config import Settings, get_settings
from gig_ledger.errors import PartialUpdateFailure, RecreateFailure
from gig_ledger.models import DATE_FIELDS, IDENTITY_FIELDS, Expense, Gig
from gig_ledger.schemas import ExpenseCreate, GigCreate, GigPatch, parse
from gig_ledger.services.group_resolver import resolve_group
from gig_ledger.services.record_store import RecordStore
from gig_ledger.services.state_machine import GigStateMachine

if TYPE_CHECKING:
    from gig_ledger.calculators.types import GigGroup

logger = logging.getLogger(__name__)

# Set per row from the new date range, never copied from the old rows
_SPAN_FIELDS = frozenset({"multi_day_group_id", "is_multi_day"})

_COPIED_FIELDS = tuple(
    name
    for name in Gig.__table__.columns.keys()
    if name not in DATE_FIELDS | IDENTITY_FIELDS | _SPAN_FIELDS
)


def _span_fields(days: list[date]) -> dict[str, Any]:
    """Columns describing where a row sits inside its booking."""
    if len(days) == 1:
        return {
            "start_date": None,
            "end_date": None,
            "is_multi_day": False,
            "multi_day_group_id": None,
        }
    return {
        "start_date": days[0],
        "end_date": days[-1],
        "is_multi_day": True,
        "multi_day_group_id": uuid.uuid4().hex,
    }


class BookingService:
    """Service for booking-level operations on day-rows.

    A booking spanning several days is stored as one row per day. Every
    operation here resolves the whole booking from any one of its rows and
    reports per-row results, since the rows are written one at a time.
    Each row write gets its own savepoint; a failed row is rolled back
    alone and the remaining rows still go through.
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

    async def get_group(self, gig_id: int, *, user_id: int) -> GigGroup:
        """Resolve the booking containing ``gig_id``.

        Raises:
            NotFoundError: If the gig is missing or owned by another user
        """
        gig = await self.store.get_owned_gig(gig_id, user_id)
        return await resolve_group(self.store, gig)

    async def create_booking(
        self, user_id: int, data: GigCreate | dict[str, Any]
    ) -> list[Gig]:
        """Write one row per day of a new booking.

        Args:
            user_id: Owner of the booking
            data: Booking details; ``end_date`` optional

        Returns:
            The created rows, oldest first

        Raises:
            ValidationFailure: If the booking details are malformed
        """
        booking = parse(GigCreate, data, "booking")
        days = booking_days(booking.start_date, booking.end_date, self.settings.max_recreate_days)
        fields = {**booking.row_fields(), **_span_fields(days)}

        gigs = [await self.store.create_gig(user_id, date=day, **fields) for day in days]
        logger.info(
            "Booked '%s' for user %s over %d day(s)", booking.event_name, user_id, len(gigs)
        )
        return gigs

    async def add_expense(
        self, user_id: int, data: ExpenseCreate | dict[str, Any]
    ) -> Expense:
        """Record a standalone expense, optionally linked to one of the user's gigs.

        Raises:
            ValidationFailure: If the expense is malformed
            NotFoundError: If the linked gig is missing or owned by another user
        """
        expense = parse(ExpenseCreate, data, "expense")
        if expense.gig_id is not None:
            await self.store.get_owned_gig(expense.gig_id, user_id)
        return await self.store.create_expense(user_id, **expense.model_dump())

    async def update_group_date_range(
        self,
        group_id: int,
        new_start: date,
        new_end: date | None,
        patch: GigPatch | dict[str, Any] | None = None,
        *,
        user_id: int,
    ) -> FanOutResult:
        """Edit a booking, moving it to a new date range if needed.

        When the range is unchanged every row is patched in place. Otherwise
        the old rows (and their linked expenses) are deleted and one row per
        day of the new range is created from the earliest old row with the
        patch applied.

        Args:
            group_id: Id of any day-row of the booking
            new_start: First day of the booking
            new_end: Last day of the booking (None for a single day)
            patch: Non-date fields to change on every row
            user_id: Owner of the booking

        Returns:
            FanOutResult for the patched or recreated rows

        Raises:
            ValidationFailure: If the patch is malformed
            NotFoundError: If the gig is missing or owned by another user
            PartialUpdateFailure: If some rows could not be patched or deleted
            RecreateFailure: If old rows were deleted but some days could not be created
        """
        changes = parse(GigPatch, patch or {}, "gig update").changes()
        group = await self.get_group(group_id, user_id=user_id)
        days = booking_days(new_start, new_end, self.settings.max_recreate_days)

        if days[0] == group.start_date and days[-1] == group.end_date:
            return await self._update_in_place(group, changes, user_id)
        return await self._recreate(group, days, changes, user_id)

    async def _update_in_place(
        self, group: GigGroup, changes: dict[str, Any], user_id: int
    ) -> FanOutResult:
        fan_out = FanOutResult(operation="update_group")
        for gig_id in [g.id for g in group.members]:
            try:
                async with self.session.begin_nested():
                    updated = await self.store.update_gig(gig_id, changes)
            except Exception as exc:
                logger.exception("Failed to update gig %s", gig_id)
                fan_out.results.append(MemberResult.failure(gig_id, exc))
                continue
            if updated is None:
                fan_out.results.append(MemberResult.failure(gig_id, "gig disappeared"))
            else:
                fan_out.results.append(MemberResult.success(gig_id, updated))

        self.store.cache.invalidate_user(user_id)
        if not fan_out.all_ok:
            raise PartialUpdateFailure(fan_out.operation, fan_out.results)
        return fan_out

    async def _recreate(
        self,
        group: GigGroup,
        days: list[date],
        changes: dict[str, Any],
        user_id: int,
    ) -> FanOutResult:
        anchor = group.primary
        template = {name: getattr(anchor, name) for name in _COPIED_FIELDS}
        template.update(changes)
        template.update(_span_fields(days))

        deletions = await self._delete_members(group)
        self.store.cache.invalidate_user(user_id)
        if not deletions.all_ok:
            raise PartialUpdateFailure(deletions.operation, deletions.results)
        deleted_ids = [r.gig_id for r in deletions.results]

        fan_out = FanOutResult(operation="recreate_group")
        failed_dates: list[date] = []
        for day in days:
            try:
                async with self.session.begin_nested():
                    gig = await self.store.create_gig(user_id, date=day, **template)
            except Exception:
                logger.exception("Failed to recreate booking day %s", day)
                failed_dates.append(day)
                continue
            fan_out.results.append(MemberResult.success(gig.id, gig))

        self.store.cache.invalidate_user(user_id)
        if failed_dates:
            raise RecreateFailure(
                deleted_ids=deleted_ids,
                created_ids=[r.gig_id for r in fan_out.results],
                failed_dates=failed_dates,
            )

        logger.info(
            "Moved booking '%s' to %s..%s (%d row(s) replaced by %d)",
            template.get("event_name"),
            days[0],
            days[-1],
            len(deleted_ids),
            len(fan_out.results),
        )
        return fan_out

    async def delete_group(self, gig_id: int, *, user_id: int) -> FanOutResult:
        """Delete every row of the booking containing ``gig_id``.

        Linked expenses go with their rows.

        Raises:
            NotFoundError: If the gig is missing or owned by another user
            PartialUpdateFailure: If some rows could not be deleted
        """
        group = await self.get_group(gig_id, user_id=user_id)
        fan_out = await self._delete_members(group)
        self.store.cache.invalidate_user(user_id)
        if not fan_out.all_ok:
            raise PartialUpdateFailure(fan_out.operation, fan_out.results)
        return fan_out

    async def _delete_members(self, group: GigGroup) -> FanOutResult:
        fan_out = FanOutResult(operation="delete_group")
        for gig_id in [g.id for g in group.members]:
            try:
                async with self.session.begin_nested():
                    deleted = await self.store.delete_gig(gig_id)
            except Exception as exc:
                logger.exception("Failed to delete gig %s", gig_id)
                fan_out.results.append(MemberResult.failure(gig_id, exc))
                continue
            if deleted:
                fan_out.results.append(MemberResult.success(gig_id))
            else:
                fan_out.results.append(MemberResult.failure(gig_id, "gig disappeared"))
        return fan_out

    async def promote_past_gigs(self, user_id: int, today: date | None = None) -> int:
        """Move upcoming gigs dated before ``today`` to pending payment.

        Returns:
            Number of rows promoted
        """
        today = today or date.today()
        upcoming = await self.store.get_gigs_with_status(user_id, GigStatus.UPCOMING)

        promoted = 0
        for gig in upcoming:
            if not GigStateMachine.should_promote(gig, today):
                continue
            GigStateMachine.validate_transition(gig.status, GigStatus.PENDING_PAYMENT.value)
            await self.store.update_gig(gig.id, {"status": GigStatus.PENDING_PAYMENT.value})
            promoted += 1

        if promoted:
            logger.info("Promoted %d past gig(s) to pending payment for user %s", promoted, user_id)
        return promoted
