"""Multi-day booking detection.

Bookings are stored one row per calendar day. Rows written before explicit
group ids existed (or imported from elsewhere) have to be stitched back
together heuristically so that a three-day festival is counted once, not
three times.

Rules, applied in a single forward walk over the rows sorted by date:

- rows sharing a non-empty ``multi_day_group_id`` always join, whatever
  their names say;
- otherwise event name, client name and gig type must match exactly and
  the row must fall 1-2 days after the group's latest day;
- once the next row is more than 7 days after the group's latest day the
  scan for that group stops.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from gig_ledger.calculators.types import GigGroup

if TYPE_CHECKING:
    from gig_ledger.models import Gig

CONSECUTIVE_MAX_GAP_DAYS = 2
HARD_STOP_GAP_DAYS = 7


def booking_key(gig: Gig) -> tuple[str, str, str]:
    """Identity used to match day-rows of the same booking."""
    return (gig.event_name, gig.client_name, gig.gig_type)


def _sort_key(gig: Gig) -> tuple:
    return (gig.date, gig.id if gig.id is not None else 0)


def _can_join(anchor: Gig, candidate: Gig, gap_days: int) -> bool:
    if anchor.multi_day_group_id and anchor.multi_day_group_id == candidate.multi_day_group_id:
        return True
    if booking_key(anchor) != booking_key(candidate):
        return False
    return 0 < gap_days <= CONSECUTIVE_MAX_GAP_DAYS


def _finalize(members: list[Gig]) -> GigGroup:
    members.sort(key=_sort_key)
    return GigGroup(
        members=tuple(members),
        start_date=members[0].date,
        end_date=members[-1].date,
        is_multi_day=len(members) > 1,
    )


def group_gigs(gigs: Iterable[Gig]) -> list[GigGroup]:
    """Group day-rows into bookings.

    Every input row ends up in exactly one group. Groups are returned most
    recent first.
    """
    ordered: Sequence[Gig] = sorted(gigs, key=_sort_key)
    claimed: set[int] = set()
    groups: list[GigGroup] = []

    for i, anchor in enumerate(ordered):
        if i in claimed:
            continue
        claimed.add(i)
        members = [anchor]

        for j in range(i + 1, len(ordered)):
            if j in claimed:
                continue
            candidate = ordered[j]
            gap_days = (candidate.date - members[-1].date).days
            if gap_days > HARD_STOP_GAP_DAYS:
                break
            if _can_join(anchor, candidate, gap_days):
                members.append(candidate)
                claimed.add(j)

        groups.append(_finalize(members))

    # sorted() is stable, so ties keep walk order
    return sorted(groups, key=lambda g: g.start_date, reverse=True)


def flatten(groups: Iterable[GigGroup]) -> list[Gig]:
    """All member rows of ``groups``."""
    return [gig for group in groups for gig in group.members]


def primary_members(groups: Iterable[GigGroup]) -> list[Gig]:
    """The first (earliest) row of each group: one row per booking."""
    return [group.primary for group in groups]


def find_group(groups: Iterable[GigGroup], gig_id: int) -> GigGroup | None:
    """Return the group containing ``gig_id``, if any."""
    for group in groups:
        if gig_id in group:
            return group
    return None
