"""Pledge lifecycle: create, edit, pay, reconcile, delete."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from pledge_ledger.engine.interest import (
    calculate_daily_interest,
    calculate_total_amount,
    calculate_total_interest_to_date,
    simple_accrued_interest,
)
from pledge_ledger.engine.payments import CapitalizingPayment, DirectPayment, PaymentOutcome
from pledge_ledger.engine.projection import PledgeView, project
from pledge_ledger.exceptions import (
    EntityNotFoundError,
    InvalidInputError,
    ReferentialIntegrityError,
)
from pledge_ledger.logging import pledge_context
from pledge_ledger.models import Payment, Pledge, PledgeRequest, PledgeStatus
from pledge_ledger.rates import RateTable
from pledge_ledger.sinks.base import NotificationDispatcher
from pledge_ledger.store.base import LedgerStore

logger = logging.getLogger(__name__)

PLEDGE_CREATED = "pledge.created"
PLEDGE_UPDATED = "pledge.updated"


class PledgeService:
    """Owns pledge mutations and the reads that project them.

    Every mutation runs inside one ``store.transaction()``; the best-effort
    notification is sent only after the transaction has completed.

    Parameters
    ----------
    store : LedgerStore
        Storage collaborator.
    rate_table : RateTable
        Default monthly rate for new pledges created without one.
    notifier : NotificationDispatcher | None
        Receives final values after create and edit.
    clock : Callable[[], datetime]
        Source of "now" for every accrual and timestamp.
    """

    def __init__(
        self,
        store: LedgerStore,
        rate_table: RateTable,
        notifier: NotificationDispatcher | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.rate_table = rate_table
        self.notifier = notifier
        self.clock = clock
        self.capitalizing = CapitalizingPayment(store, clock)
        self.direct = DirectPayment(store, clock)

    # Mutations

    def create_pledge(self, request: PledgeRequest) -> PledgeView:
        """Create a pledge for an existing customer."""
        if request.customer_id is None:
            raise InvalidInputError("Customer id is required")
        status = PledgeStatus.parse(request.status or PledgeStatus.ACTIVE)

        with self.store.transaction():
            if self.store.find_customer_by_id(request.customer_id) is None:
                raise ReferentialIntegrityError(f"Customer {request.customer_id} not found")

            if request.interest_rate is not None and request.interest_rate > 0:
                rate = request.interest_rate
            else:
                rate = self.rate_table.rate_for_amount(request.amount)

            now = self.clock()
            self._check_deadline(request.deadline, now)
            pledge = Pledge(
                pledge_id=None,
                customer_id=request.customer_id,
                principal=request.amount,
                monthly_rate_percent=rate,
                status=status,
                created_at=now,
                last_interest_accrued_at=now,
            )
            self._apply_details(pledge, request)
            pledge = self.store.save_pledge(pledge)

        logger.info(
            "Created pledge %s for customer %s: principal=%s rate=%s%%",
            pledge.pledge_id,
            pledge.customer_id,
            pledge.principal,
            pledge.monthly_rate_percent,
            extra=pledge_context(pledge.pledge_id, customer_id=pledge.customer_id),
        )
        self._notify(pledge, PLEDGE_CREATED)
        return project(pledge, [], now)

    def update_pledge(self, pledge_id: str, request: PledgeRequest) -> PledgeView:
        """Edit a pledge, snapshotting interest first when the rate changes.

        Interest accrued under the old rate since ``last_interest_accrued_at``
        (or ``created_at``) is prorated daily and folded into principal
        before the new rate takes effect.
        """
        status = PledgeStatus.parse(request.status) if request.status is not None else None

        with self.store.transaction():
            pledge = self._load(pledge_id, for_update=True)
            now = self.clock()
            if request.deadline is not None and pledge.created_at is not None:
                self._check_deadline(request.deadline, pledge.created_at)

            new_rate = request.interest_rate
            rate_changing = (
                new_rate is not None
                and new_rate > 0
                and (pledge.monthly_rate_percent is None or new_rate != pledge.monthly_rate_percent)
            )
            if rate_changing:
                accrued = simple_accrued_interest(
                    pledge.principal,
                    pledge.monthly_rate_percent,
                    pledge.accrual_anchor,
                    now,
                )
                pledge.principal = (pledge.principal or Decimal(0)) + accrued
                pledge.last_interest_accrued_at = now
                pledge.monthly_rate_percent = new_rate
                logger.info(
                    "Pledge %s rate change: capitalized %s, new rate %s%%",
                    pledge_id,
                    accrued,
                    new_rate,
                    extra=pledge_context(pledge_id, capitalized=accrued),
                )

            self._apply_details(pledge, request)
            if status is not None:
                pledge.status = status
            if request.amount is not None and request.amount > 0:
                pledge.principal = request.amount
            pledge.updated_at = now
            pledge = self.store.save_pledge(pledge)
            payments = self.store.find_payments_by_pledge_id_order_by_date_desc(pledge_id)

        self._notify(pledge, PLEDGE_UPDATED)
        return project(pledge, payments, now)

    def apply_payment(
        self,
        pledge_id: str,
        amount: Decimal | int | float | str,
        payment_type: str | None = None,
        notes: str | None = None,
    ) -> PaymentOutcome:
        """Capitalize accrued interest and apply a payment."""
        return self.capitalizing.apply(pledge_id, amount, payment_type, notes)

    def record_payment(self, pledge_id: str, amount: Decimal | int | float | str) -> PledgeView:
        """Subtract a payment straight from principal, no interest step."""
        outcome = self.direct.apply(pledge_id, amount)
        return self._view(outcome.pledge)

    def reconcile(self) -> list[str]:
        """Close every ACTIVE pledge whose principal is exhausted.

        Safe to repeat and to run alongside single-pledge edits. Each pledge
        is re-read and closed in its own transaction.

        Returns
        -------
        list[str]
            Ids of the pledges closed by this sweep.
        """
        closed: list[str] = []
        for candidate in self.store.find_all_pledges():
            if not self._exhausted(candidate):
                continue
            with self.store.transaction():
                pledge = self.store.find_pledge_for_update(candidate.pledge_id)
                if pledge is None or not self._exhausted(pledge):
                    continue
                pledge.status = PledgeStatus.CLOSED
                pledge.updated_at = self.clock()
                self.store.save_pledge(pledge)
            closed.append(pledge.pledge_id)
            logger.debug(
                "Auto-closed pledge %s with amount %s",
                pledge.pledge_id,
                pledge.principal,
                extra=pledge_context(pledge.pledge_id),
            )

        if closed:
            logger.info("Auto-closed %d pledges with zero amounts", len(closed))
        return closed

    def delete_pledge(self, pledge_id: str) -> None:
        self.store.delete_pledge_by_id(pledge_id)

    def delete_payment(self, payment_id: str) -> None:
        self.store.delete_payment_by_id(payment_id)

    # Reads

    def get_pledge(self, pledge_id: str) -> PledgeView:
        return self._view(self._load(pledge_id))

    def list_pledges(self) -> list[PledgeView]:
        """All pledges, after healing exhausted ones."""
        self.reconcile()
        return [self._view(p) for p in self.store.find_all_pledges()]

    def list_pledges_for_customer(self, customer_id: str) -> list[PledgeView]:
        self.reconcile()
        return [self._view(p) for p in self.store.find_pledges_by_customer_id(customer_id)]

    def list_payments(self, pledge_id: str) -> list[Payment]:
        """Payments for a pledge, newest first."""
        return self.store.find_payments_by_pledge_id_order_by_date_desc(pledge_id)

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.store.find_payment_by_id(payment_id)
        if payment is None:
            raise EntityNotFoundError(f"Payment {payment_id} not found")
        return payment

    def total_paid(self, pledge_id: str) -> Decimal:
        return self.store.sum_amount_by_pledge_id(pledge_id)

    def calculate_interest(self, pledge_id: str) -> Decimal:
        """Strict tiered interest since creation; fails on missing amount, rate or date."""
        return calculate_total_interest_to_date(self._load(pledge_id), self.clock())

    def daily_interest(self, pledge_id: str) -> Decimal:
        """One day of interest on the current principal; strict like the report."""
        return calculate_daily_interest(self._load(pledge_id))

    def total_amount(self, pledge_id: str) -> Decimal:
        return calculate_total_amount(self._load(pledge_id), self.clock())

    # Helpers

    def _load(self, pledge_id: str, for_update: bool = False) -> Pledge:
        if for_update:
            pledge = self.store.find_pledge_for_update(pledge_id)
        else:
            pledge = self.store.find_pledge_by_id(pledge_id)
        if pledge is None:
            raise EntityNotFoundError(f"Pledge {pledge_id} not found")
        return pledge

    def _view(self, pledge: Pledge) -> PledgeView:
        payments = self.store.find_payments_by_pledge_id_order_by_date_desc(pledge.pledge_id)
        return project(pledge, payments, self.clock())

    def _notify(self, pledge: Pledge, event_type: str) -> None:
        if self.notifier is not None:
            self.notifier.notify(pledge, event_type)

    @staticmethod
    def _exhausted(pledge: Pledge) -> bool:
        return (
            pledge.status == PledgeStatus.ACTIVE
            and pledge.principal is not None
            and pledge.principal <= 0
        )

    @staticmethod
    def _check_deadline(deadline: datetime | None, created_at: datetime) -> None:
        if deadline is not None and deadline <= created_at:
            raise InvalidInputError("Deadline must be after the pledge creation date")

    @staticmethod
    def _apply_details(pledge: Pledge, request: PledgeRequest) -> None:
        """Overwrite descriptive and collateral fields verbatim."""
        pledge.title = request.title
        pledge.description = request.description
        pledge.deadline = request.deadline
        pledge.item_type = request.item_type
        pledge.weight = request.weight
        pledge.purity = request.purity
        pledge.notes = request.notes
        pledge.customer_photo = request.customer_photo
        pledge.item_photo = request.item_photo
        pledge.receipt_photo = request.receipt_photo
