"""Gig status state machine with transition validation."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from gig_ledger.calculators.types import GigStatus
from gig_ledger.errors import GigLedgerError

if TYPE_CHECKING:
    from gig_ledger.models import Gig


class InvalidTransitionError(GigLedgerError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class GigStateMachine:
    """State machine for gig status transitions.

    Allowed transitions:
    - upcoming → pending_payment (the gig date has passed)
    - upcoming → completed (paid up front)
    - pending_payment → completed
    - completed → completed (payment re-recorded with corrected figures)
    """

    VALID_TRANSITIONS: dict[GigStatus, list[GigStatus]] = {
        GigStatus.UPCOMING: [GigStatus.PENDING_PAYMENT, GigStatus.COMPLETED],
        GigStatus.PENDING_PAYMENT: [GigStatus.COMPLETED],
        GigStatus.COMPLETED: [GigStatus.COMPLETED],
    }

    # Statuses that still await a payment
    OPEN = {GigStatus.UPCOMING, GigStatus.PENDING_PAYMENT}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        try:
            source = GigStatus.normalize(from_status)
            target = GigStatus.normalize(to_status)
        except ValueError:
            return False
        return target in cls.VALID_TRANSITIONS.get(source, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_open(cls, status: str) -> bool:
        """True while the gig has not been paid."""
        try:
            return GigStatus.normalize(status) in cls.OPEN
        except ValueError:
            return False

    @classmethod
    def should_promote(cls, gig: Gig, today: date) -> bool:
        """An upcoming gig whose day is over is waiting for payment."""
        return GigStatus.normalize(gig.status) == GigStatus.UPCOMING and gig.date < today
