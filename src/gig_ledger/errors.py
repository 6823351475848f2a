"""Domain errors raised by the gig ledger engine."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gig_ledger.calculators.types import MemberResult


class GigLedgerError(Exception):
    """Base class for all engine errors."""


class NotFoundError(GigLedgerError):
    """Raised when a gig or group does not exist or belongs to another user."""

    def __init__(self, entity: str, entity_id: Any, user_id: int | None = None):
        self.entity = entity
        self.entity_id = entity_id
        self.user_id = user_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationFailure(GigLedgerError):
    """Raised for malformed payloads before any mutation happens."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, exc: Exception, what: str) -> ValidationFailure:
        """Wrap a pydantic ValidationError."""
        errors = exc.errors() if hasattr(exc, "errors") else []
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in errors
        )
        return cls(f"Invalid {what}: {details}" if details else f"Invalid {what}", errors)


class PartialUpdateFailure(GigLedgerError):
    """Raised when one or more group-member operations failed.

    Operations that succeeded are not rolled back; ``succeeded_ids`` tells the
    caller which rows already carry the new values.
    """

    def __init__(self, operation: str, results: list[MemberResult]):
        self.operation = operation
        self.results = results
        self.succeeded_ids = [r.gig_id for r in results if r.ok]
        self.failed_ids = [r.gig_id for r in results if not r.ok]
        super().__init__(
            f"{operation} failed for {len(self.failed_ids)} of {len(results)} gig(s): "
            f"failed={self.failed_ids} succeeded={self.succeeded_ids}"
        )


class RecreateFailure(GigLedgerError):
    """Raised when a date-range edit deleted the old rows but could not insert all new ones."""

    def __init__(
        self,
        deleted_ids: list[int],
        created_ids: list[int],
        failed_dates: list[date],
    ):
        self.deleted_ids = deleted_ids
        self.created_ids = created_ids
        self.failed_dates = failed_dates
        super().__init__(
            f"Recreated {len(created_ids)} day(s) after deleting {len(deleted_ids)}; "
            f"failed dates: {[d.isoformat() for d in failed_dates]}"
        )
