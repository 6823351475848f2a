"""Resolve the booking a single gig row belongs to."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gig_ledger.calculators.grouping import booking_key, find_group, group_gigs
from gig_ledger.calculators.types import GigGroup
from gig_ledger.errors import NotFoundError

if TYPE_CHECKING:
    from gig_ledger.models import Gig
    from gig_ledger.services.record_store import RecordStore


async def resolve_group(store: RecordStore, gig: Gig, *, open_only: bool = False) -> GigGroup:
    """Find every day-row that belongs to the same booking as ``gig``.

    An explicit ``multi_day_group_id`` is authoritative. Otherwise the user's
    rows with the same event, client and gig type (only unpaid ones when
    ``open_only``) are run through the grouping engine and the group holding
    ``gig`` is kept, so a repeat booking of the same event months later is
    left alone.
    """
    if gig.multi_day_group_id:
        candidates = await store.get_gigs_by_group_id(gig.user_id, gig.multi_day_group_id)
    else:
        event_name, client_name, gig_type = booking_key(gig)
        candidates = await store.get_gigs_matching(
            gig.user_id, event_name, client_name, gig_type, open_only=open_only
        )
    if all(c.id != gig.id for c in candidates):
        candidates.append(gig)

    group = find_group(group_gigs(candidates), gig.id)
    if group is None:
        raise NotFoundError("Gig group", gig.id, gig.user_id)
    return group
