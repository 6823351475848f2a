"""Gig ledger services."""

from gig_ledger.services.aggregation_service import PeriodAggregationService
from gig_ledger.services.booking_service import BookingService
from gig_ledger.services.payment_service import PaymentProcessor, PaymentResult
from gig_ledger.services.record_store import RecordStore
from gig_ledger.services.state_machine import GigStateMachine, GigStatus, InvalidTransitionError

__all__ = [
    "BookingService",
    "GigStateMachine",
    "GigStatus",
    "InvalidTransitionError",
    "PaymentProcessor",
    "PaymentResult",
    "PeriodAggregationService",
    "RecordStore",
]
