"""Read view of a pledge with a live remaining amount."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pledge_ledger.engine.interest import projected_balance
from pledge_ledger.exceptions import MissingPrerequisiteError
from pledge_ledger.models import Payment, Pledge, PledgeStatus
from pledge_ledger.sinks.serialization import to_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PledgeView:
    """Stored pledge fields plus ``remaining_amount`` as of the read.

    ``remaining_amount`` is never persisted. It is ``None`` when it could not
    be computed.
    """

    pledge_id: str
    customer_id: str
    principal: Decimal | None
    monthly_rate_percent: Decimal | None
    status: PledgeStatus
    created_at: datetime | None
    last_interest_accrued_at: datetime | None
    title: str | None
    description: str | None
    deadline: datetime | None
    item_type: str | None
    weight: Decimal | None
    purity: str | None
    notes: str | None
    customer_photo: str | None
    item_photo: str | None
    receipt_photo: str | None
    remaining_amount: Decimal | None = None

    def to_dict(self) -> dict:
        return to_record(self)


_STORED_FIELDS = [f.name for f in fields(PledgeView) if f.name != "remaining_amount"]


def project(pledge: Pledge, payments: Iterable[Payment], as_of: datetime) -> PledgeView:
    """Build the read view for ``pledge``.

    Parameters
    ----------
    pledge : Pledge
        Stored pledge.
    payments : Iterable[Payment]
        The pledge's payments, newest first.
    as_of : datetime
        Instant the remaining amount is computed for.
    """
    stored = {name: getattr(pledge, name) for name in _STORED_FIELDS}
    try:
        remaining = projected_balance(pledge, payments, as_of)
    except (ArithmeticError, TypeError, ValueError, MissingPrerequisiteError):
        logger.debug("Remaining amount unavailable for pledge %s", pledge.pledge_id, exc_info=True)
        remaining = None
    return PledgeView(**stored, remaining_amount=remaining)
