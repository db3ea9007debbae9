"""Pledge aggregate and its create/edit request."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pledge_ledger.models.enums import PledgeStatus, is_valid_status
from pledge_ledger.money import to_decimal

MAX_MONTHLY_RATE_PERCENT = Decimal(36)


@dataclass
class Pledge:
    """Collateralized cash loan.

    ``principal`` is the current outstanding base, re-based after every
    capitalization or payment; it is not the original loan amount.
    """

    pledge_id: str | None
    customer_id: str
    principal: Decimal | None
    monthly_rate_percent: Decimal | None  # percent per 30-day period
    status: PledgeStatus
    created_at: datetime | None
    last_interest_accrued_at: datetime | None = None
    title: str | None = None
    description: str | None = None
    deadline: datetime | None = None
    item_type: str | None = None
    weight: Decimal | None = None
    purity: str | None = None
    notes: str | None = None
    # Opaque photo URLs
    customer_photo: str | None = None
    item_photo: str | None = None
    receipt_photo: str | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = PledgeStatus.parse(self.status)
        self.principal = to_decimal(self.principal)
        self.monthly_rate_percent = to_decimal(self.monthly_rate_percent)
        self.weight = to_decimal(self.weight)

    @property
    def accrual_anchor(self) -> datetime | None:
        """Instant up to which interest has been folded into principal."""
        return self.last_interest_accrued_at or self.created_at

    @property
    def is_closed(self) -> bool:
        return self.status == PledgeStatus.CLOSED

    def is_valid_amount(self) -> bool:
        return self.principal is not None and self.principal > 0

    def is_valid_interest_rate(self) -> bool:
        rate = self.monthly_rate_percent
        return rate is not None and 0 < rate <= MAX_MONTHLY_RATE_PERCENT

    def is_valid_status(self) -> bool:
        return is_valid_status(self.status)

    def is_valid_dates(self) -> bool:
        return (
            self.created_at is not None
            and self.deadline is not None
            and self.deadline > self.created_at
        )


@dataclass
class PledgeRequest:
    """Caller input for creating or editing a pledge."""

    customer_id: str | None = None
    amount: Decimal | None = None
    interest_rate: Decimal | None = None
    status: PledgeStatus | str | None = None
    title: str | None = None
    description: str | None = None
    deadline: datetime | None = None
    item_type: str | None = None
    weight: Decimal | None = None
    purity: str | None = None
    notes: str | None = None
    customer_photo: str | None = None
    item_photo: str | None = None
    receipt_photo: str | None = None

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)
        self.interest_rate = to_decimal(self.interest_rate)
        self.weight = to_decimal(self.weight)
