"""Payment ledger entry."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Payment:
    """Immutable payment against a pledge.

    The most recent ``payment_date`` for a pledge is the start of its next
    accrual window.
    """

    payment_id: str | None
    pledge_id: str
    amount: Decimal
    payment_date: datetime
    payment_type: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
