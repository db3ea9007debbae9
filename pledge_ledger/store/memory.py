"""In-memory ledger store with referential integrity."""

import copy
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Iterator

from pledge_ledger.exceptions import ReferentialIntegrityError
from pledge_ledger.models import Customer, Payment, Pledge
from pledge_ledger.money import ZERO

_MISSING = object()


@dataclass
class InMemoryLedgerStore:
    """Dict-backed store for customers, pledges and payments.

    Reads hand out copies, so a loaded pledge can be changed freely and only
    becomes visible to others once saved. Every read and write holds a
    re-entrant lock; ``transaction()`` holds it for the whole block, and
    undoes the block's writes when it raises.
    """

    customers: dict[str, Customer] = field(default_factory=dict)
    pledges: dict[str, Pledge] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)

    # Relationship indexes
    _customer_pledges: dict[str, list[str]] = field(default_factory=dict)
    _pledge_payments: dict[str, list[str]] = field(default_factory=dict)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    # (table, key, previous value) for each write in the open transaction
    _undo: list[tuple[str, str, Any]] | None = field(default=None, repr=False)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Atomic scope; nested scopes join the outermost one."""
        with self._lock:
            if self._undo is not None:
                yield
                return

            self._undo = []
            try:
                yield
            except BaseException:
                self._rollback()
                raise
            finally:
                self._undo = None

    def _remember(self, table: str, key: str) -> None:
        """Record the current value of ``table[key]`` before it is changed."""
        if self._undo is None:
            return
        previous = getattr(self, table).get(key, _MISSING)
        # Stored entities are replaced, never mutated; index lists are mutated
        if isinstance(previous, list):
            previous = list(previous)
        self._undo.append((table, key, previous))

    def _rollback(self) -> None:
        for table, key, previous in reversed(self._undo):
            values = getattr(self, table)
            if previous is _MISSING:
                values.pop(key, None)
            else:
                values[key] = previous

    # Customers
    def save_customer(self, customer: Customer) -> Customer:
        """Add or replace a customer."""
        with self._lock:
            if customer.customer_id is None:
                customer = replace(customer, customer_id=uuid.uuid4().hex)
            self._remember("customers", customer.customer_id)
            self.customers[customer.customer_id] = copy.deepcopy(customer)
            if customer.customer_id not in self._customer_pledges:
                self._remember("_customer_pledges", customer.customer_id)
                self._customer_pledges[customer.customer_id] = []
            return copy.deepcopy(customer)

    def find_customer_by_id(self, customer_id: str) -> Customer | None:
        with self._lock:
            customer = self.customers.get(customer_id)
            return copy.deepcopy(customer) if customer else None

    # Pledges
    def save_pledge(self, pledge: Pledge) -> Pledge:
        """Upsert a pledge; the owning customer must exist."""
        with self._lock:
            if pledge.customer_id not in self.customers:
                raise ReferentialIntegrityError(f"Customer {pledge.customer_id} not found")

            if pledge.pledge_id is None:
                pledge = replace(pledge, pledge_id=uuid.uuid4().hex)

            previous = self.pledges.get(pledge.pledge_id)
            if previous is not None and previous.customer_id != pledge.customer_id:
                self._remember("_customer_pledges", previous.customer_id)
                self._customer_pledges[previous.customer_id].remove(pledge.pledge_id)
                previous = None
            if previous is None:
                self._remember("_customer_pledges", pledge.customer_id)
                self._customer_pledges[pledge.customer_id].append(pledge.pledge_id)
                if pledge.pledge_id not in self._pledge_payments:
                    self._remember("_pledge_payments", pledge.pledge_id)
                    self._pledge_payments[pledge.pledge_id] = []

            self._remember("pledges", pledge.pledge_id)
            self.pledges[pledge.pledge_id] = copy.deepcopy(pledge)
            return copy.deepcopy(pledge)

    def find_pledge_by_id(self, pledge_id: str) -> Pledge | None:
        with self._lock:
            pledge = self.pledges.get(pledge_id)
            return copy.deepcopy(pledge) if pledge else None

    def find_pledge_for_update(self, pledge_id: str) -> Pledge | None:
        """Plain read; inside ``transaction()`` the held lock already excludes other writers."""
        return self.find_pledge_by_id(pledge_id)

    def find_all_pledges(self) -> list[Pledge]:
        with self._lock:
            return [copy.deepcopy(p) for p in self.pledges.values()]

    def find_pledges_by_customer_id(self, customer_id: str) -> list[Pledge]:
        with self._lock:
            pledge_ids = self._customer_pledges.get(customer_id, [])
            return [copy.deepcopy(self.pledges[pid]) for pid in pledge_ids]

    def delete_pledge_by_id(self, pledge_id: str) -> None:
        """Remove a pledge and its payment history; unknown ids are ignored."""
        with self._lock:
            pledge = self.pledges.get(pledge_id)
            if pledge is None:
                return
            self._remember("pledges", pledge_id)
            del self.pledges[pledge_id]
            self._remember("_customer_pledges", pledge.customer_id)
            self._customer_pledges[pledge.customer_id].remove(pledge_id)
            self._remember("_pledge_payments", pledge_id)
            for payment_id in self._pledge_payments.pop(pledge_id, []):
                self._remember("payments", payment_id)
                self.payments.pop(payment_id, None)

    # Payments
    def save_payment(self, payment: Payment) -> Payment:
        """Append a payment; the pledge must exist."""
        with self._lock:
            if payment.pledge_id not in self.pledges:
                raise ReferentialIntegrityError(f"Pledge {payment.pledge_id} not found")

            if payment.payment_id is None:
                payment = replace(payment, payment_id=uuid.uuid4().hex)
            if payment.payment_id not in self.payments:
                self._remember("_pledge_payments", payment.pledge_id)
                self._pledge_payments[payment.pledge_id].append(payment.payment_id)
            self._remember("payments", payment.payment_id)
            self.payments[payment.payment_id] = payment
            return payment

    def find_payment_by_id(self, payment_id: str) -> Payment | None:
        with self._lock:
            return self.payments.get(payment_id)

    def find_payments_by_pledge_id_order_by_date_desc(self, pledge_id: str) -> list[Payment]:
        """Payments newest first; same-instant payments keep reverse insertion order."""
        with self._lock:
            payment_ids = self._pledge_payments.get(pledge_id, [])
            ordered = [self.payments[pid] for pid in reversed(payment_ids)]
        return sorted(ordered, key=lambda p: p.payment_date, reverse=True)

    def sum_amount_by_pledge_id(self, pledge_id: str) -> Decimal:
        with self._lock:
            payment_ids = self._pledge_payments.get(pledge_id, [])
            return sum((self.payments[pid].amount for pid in payment_ids), ZERO)

    def delete_payment_by_id(self, payment_id: str) -> None:
        with self._lock:
            payment = self.payments.get(payment_id)
            if payment is None:
                return
            self._remember("payments", payment_id)
            del self.payments[payment_id]
            self._remember("_pledge_payments", payment.pledge_id)
            self._pledge_payments[payment.pledge_id].remove(payment_id)

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._lock:
            return {
                "customers": len(self.customers),
                "pledges": len(self.pledges),
                "payments": len(self.payments),
            }
