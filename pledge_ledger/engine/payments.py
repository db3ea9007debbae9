"""Payment application strategies.

``CapitalizingPayment`` folds interest accrued since the last payment into
principal and then subtracts the payment. ``DirectPayment`` subtracts the
payment from principal with no interest step. They yield different
balances for the same inputs and are selected by the calling entry point.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from pledge_ledger.engine.interest import accrual_start_for, accrued_interest
from pledge_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    InvalidInputError,
    MissingPrerequisiteError,
)
from pledge_ledger.logging import pledge_context
from pledge_ledger.models import Payment, PaymentType, Pledge, PledgeStatus
from pledge_ledger.money import ZERO, to_decimal
from pledge_ledger.store.base import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of applying one payment."""

    pledge: Pledge
    payment: Payment
    accrued_interest: Decimal  # capitalized before the payment was subtracted
    total_due: Decimal  # principal + accrued interest before the payment
    remaining_amount: Decimal  # amount still owed right after the payment
    total_paid: Decimal  # every payment ever recorded on the pledge


def resolve_status(principal: Decimal, remaining_amount: Decimal, total_paid: Decimal) -> PledgeStatus:
    """Status after a capitalizing payment; exhausted principal wins."""
    if principal <= 0:
        return PledgeStatus.CLOSED
    if remaining_amount <= 0:
        return PledgeStatus.CLOSED
    if total_paid > 0:
        return PledgeStatus.PARTIALLY_PAID
    return PledgeStatus.ACTIVE


class PaymentStrategy(ABC):
    """Apply a payment to a stored pledge inside one transaction."""

    name: str

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self.clock = clock

    @abstractmethod
    def apply(
        self,
        pledge_id: str,
        amount: Decimal | int | float | str,
        payment_type: str | None = None,
        notes: str | None = None,
    ) -> PaymentOutcome:
        """Apply ``amount`` to the pledge and record the payment."""

    @staticmethod
    def _validated_amount(amount: Decimal | int | float | str | None) -> Decimal:
        value = to_decimal(amount)
        if value is None or not value.is_finite() or value <= 0:
            raise InvalidInputError(f"Payment amount must be positive, got {amount!r}")
        return value

    def _load_pledge(self, pledge_id: str) -> Pledge:
        pledge = self.store.find_pledge_for_update(pledge_id)
        if pledge is None:
            raise EntityNotFoundError(f"Pledge {pledge_id} not found")
        return pledge


class CapitalizingPayment(PaymentStrategy):
    """Capitalize accrued interest, then subtract the payment.

    Overpayment leaves a zero balance and no refund. CLOSED pledges are
    rejected before anything is read or written.
    """

    name = "capitalizing"

    def apply(
        self,
        pledge_id: str,
        amount: Decimal | int | float | str,
        payment_type: str | None = None,
        notes: str | None = None,
    ) -> PaymentOutcome:
        amount = self._validated_amount(amount)

        with self.store.transaction():
            pledge = self._load_pledge(pledge_id)
            if pledge.is_closed:
                raise InvalidEntityStateError(f"Cannot make payment on closed pledge {pledge_id}")

            now = self.clock()
            history = self.store.find_payments_by_pledge_id_order_by_date_desc(pledge_id)
            principal = pledge.principal or ZERO
            accrued = accrued_interest(
                principal,
                pledge.monthly_rate_percent,
                accrual_start_for(pledge, history),
                now,
            )
            total_due = principal + accrued
            remaining = max(ZERO, total_due - amount)

            # Principal is re-based before the ledger entry exists
            pledge.principal = remaining
            pledge.updated_at = now
            pledge = self.store.save_pledge(pledge)

            payment = self.store.save_payment(
                Payment(
                    payment_id=None,
                    pledge_id=pledge_id,
                    amount=amount,
                    payment_date=now,
                    payment_type=payment_type,
                    notes=notes,
                    created_at=now,
                )
            )

            remaining_amount = self._total_amount_due(pledge, now)
            total_paid = self.store.sum_amount_by_pledge_id(pledge_id)
            pledge.status = resolve_status(remaining, remaining_amount, total_paid)
            pledge = self.store.save_pledge(pledge)

        logger.info(
            "Payment %s on pledge %s: accrued=%s due=%s remaining=%s status=%s",
            amount,
            pledge_id,
            accrued,
            total_due,
            remaining,
            pledge.status.value,
            extra=pledge_context(pledge_id, strategy=self.name, principal=remaining),
        )
        return PaymentOutcome(
            pledge=pledge,
            payment=payment,
            accrued_interest=accrued,
            total_due=total_due,
            remaining_amount=remaining_amount,
            total_paid=total_paid,
        )

    def _total_amount_due(self, pledge: Pledge, now: datetime) -> Decimal:
        """Re-based principal plus a fresh accrual from the latest payment."""
        principal = pledge.principal or ZERO
        if pledge.monthly_rate_percent is None or pledge.created_at is None:
            return principal
        history = self.store.find_payments_by_pledge_id_order_by_date_desc(pledge.pledge_id)
        start = accrual_start_for(pledge, history)
        return principal + accrued_interest(principal, pledge.monthly_rate_percent, start, now)


class DirectPayment(PaymentStrategy):
    """Subtract the payment from principal with no interest capitalization.

    A payment larger than principal is refused. The payment type is derived:
    FULL when it clears the principal exactly, PARTIAL otherwise.
    """

    name = "direct"

    def apply(
        self,
        pledge_id: str,
        amount: Decimal | int | float | str,
        payment_type: str | None = None,
        notes: str | None = None,
    ) -> PaymentOutcome:
        amount = self._validated_amount(amount)

        with self.store.transaction():
            pledge = self._load_pledge(pledge_id)
            if pledge.principal is None:
                raise MissingPrerequisiteError(f"Pledge {pledge_id} has no amount set")

            principal = pledge.principal
            new_principal = principal - amount
            if new_principal < 0:
                raise InvalidEntityStateError(
                    f"Payment amount {amount} exceeds pledge amount {principal}"
                )

            now = self.clock()
            derived_type = PaymentType.FULL if new_principal == 0 else PaymentType.PARTIAL
            payment = self.store.save_payment(
                Payment(
                    payment_id=None,
                    pledge_id=pledge_id,
                    amount=amount,
                    payment_date=now,
                    payment_type=payment_type or derived_type.value,
                    notes=notes,
                    created_at=now,
                )
            )

            pledge.principal = new_principal
            pledge.updated_at = now
            if new_principal <= 0:
                pledge.status = PledgeStatus.CLOSED
                logger.info(
                    "Pledge %s auto-closed due to zero amount",
                    pledge_id,
                    extra=pledge_context(pledge_id, strategy=self.name),
                )
            pledge = self.store.save_pledge(pledge)
            total_paid = self.store.sum_amount_by_pledge_id(pledge_id)

        return PaymentOutcome(
            pledge=pledge,
            payment=payment,
            accrued_interest=ZERO,
            total_due=principal,
            remaining_amount=new_principal,
            total_paid=total_paid,
        )
