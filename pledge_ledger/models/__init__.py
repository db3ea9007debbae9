"""Domain models for the pledge ledger."""

from pledge_ledger.models.base import Event
from pledge_ledger.models.customer import Customer
from pledge_ledger.models.enums import PaymentType, PledgeStatus, is_valid_status
from pledge_ledger.models.payment import Payment
from pledge_ledger.models.pledge import Pledge, PledgeRequest

__all__ = [
    "Customer",
    "Event",
    "Payment",
    "PaymentType",
    "Pledge",
    "PledgeRequest",
    "PledgeStatus",
    "is_valid_status",
]
