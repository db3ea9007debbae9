"""Storage contract consumed by the ledger engine."""

from __future__ import annotations

from contextlib import AbstractContextManager
from decimal import Decimal
from typing import Protocol

from pledge_ledger.models import Customer, Payment, Pledge


class LedgerStore(Protocol):
    """Synchronous pledge/payment/customer storage.

    Every financial mutation is executed inside ``transaction()``: reads,
    computation and writes either all land or none do.
    """

    def transaction(self) -> AbstractContextManager[None]: ...

    # Pledges
    def find_pledge_by_id(self, pledge_id: str) -> Pledge | None: ...

    def find_pledge_for_update(self, pledge_id: str) -> Pledge | None:
        """Read a pledge and hold it against concurrent writers until the
        enclosing ``transaction()`` ends."""
        ...

    def find_all_pledges(self) -> list[Pledge]: ...

    def find_pledges_by_customer_id(self, customer_id: str) -> list[Pledge]: ...

    def save_pledge(self, pledge: Pledge) -> Pledge: ...

    def delete_pledge_by_id(self, pledge_id: str) -> None: ...

    # Payments
    def find_payments_by_pledge_id_order_by_date_desc(self, pledge_id: str) -> list[Payment]: ...

    def find_payment_by_id(self, payment_id: str) -> Payment | None: ...

    def save_payment(self, payment: Payment) -> Payment: ...

    def sum_amount_by_pledge_id(self, pledge_id: str) -> Decimal: ...

    def delete_payment_by_id(self, payment_id: str) -> None: ...

    # Customers
    def find_customer_by_id(self, customer_id: str) -> Customer | None: ...

    def save_customer(self, customer: Customer) -> Customer: ...
