"""PostgreSQL-backed ledger store (psycopg 3)."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import fields, replace
from decimal import Decimal
from typing import Any, Iterator

import psycopg
from psycopg.rows import dict_row

from pledge_ledger.exceptions import ReferentialIntegrityError
from pledge_ledger.models import Customer, Payment, Pledge
from pledge_ledger.money import ZERO

logger = logging.getLogger(__name__)

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS customers (
    customer_id TEXT PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    phone VARCHAR(15),
    email VARCHAR(255),
    address VARCHAR(500),
    created_at TIMESTAMP,
    is_active BOOLEAN DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS pledges (
    pledge_id TEXT PRIMARY KEY,
    customer_id TEXT NOT NULL REFERENCES customers (customer_id),
    principal NUMERIC,
    monthly_rate_percent NUMERIC(7, 4),
    status VARCHAR(20) NOT NULL,
    created_at TIMESTAMP,
    last_interest_accrued_at TIMESTAMP,
    title TEXT,
    description TEXT,
    deadline TIMESTAMP,
    item_type TEXT,
    weight NUMERIC(12, 3),
    purity TEXT,
    notes TEXT,
    customer_photo TEXT,
    item_photo TEXT,
    receipt_photo TEXT,
    updated_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS payments (
    payment_id TEXT PRIMARY KEY,
    pledge_id TEXT NOT NULL REFERENCES pledges (pledge_id) ON DELETE CASCADE,
    amount NUMERIC NOT NULL,
    payment_date TIMESTAMP NOT NULL,
    payment_type TEXT,
    notes TEXT,
    created_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_pledges_customer ON pledges (customer_id);
CREATE INDEX IF NOT EXISTS idx_payments_pledge_date ON payments (pledge_id, payment_date DESC);
"""


def _columns(model: type) -> list[str]:
    return [f.name for f in fields(model)]


def _upsert_sql(table: str, columns: list[str], key: str) -> str:
    placeholders = ", ".join(f"%({c})s" for c in columns)
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c != key)
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "  # noqa: S608
        f"ON CONFLICT ({key}) DO UPDATE SET {updates}"
    )


class PostgresLedgerStore:
    """Ledger storage on PostgreSQL.

    Each call runs in its own transaction unless it is made inside
    ``transaction()``, in which case the whole block commits or rolls back
    together.
    """

    CUSTOMER_COLUMNS = _columns(Customer)
    PLEDGE_COLUMNS = _columns(Pledge)
    PAYMENT_COLUMNS = _columns(Payment)

    def __init__(self, conn: Any) -> None:
        """Initialize the store.

        Parameters
        ----------
        conn : psycopg.Connection
            Open connection; rows are read as dicts.
        """
        self.conn = conn
        self.conn.row_factory = dict_row

    @classmethod
    def connect(cls, conninfo: str) -> "PostgresLedgerStore":
        """Open a connection and wrap it."""
        logger.info("Connecting ledger store to %s", conninfo.split("@")[-1])
        return cls(psycopg.connect(conninfo))

    def create_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self.transaction():
            with self.conn.cursor() as cur:
                cur.execute(SCHEMA_DDL)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.conn.transaction():
            yield

    def close(self) -> None:
        self.conn.close()

    def _fetchone(self, sql: str, params: tuple) -> dict | None:
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchall()

    def _execute(self, sql: str, params: Any) -> None:
        with self.conn.transaction():
            with self.conn.cursor() as cur:
                cur.execute(sql, params)

    # Customers
    def save_customer(self, customer: Customer) -> Customer:
        if customer.customer_id is None:
            customer = replace(customer, customer_id=uuid.uuid4().hex)
        row = {c: getattr(customer, c) for c in self.CUSTOMER_COLUMNS}
        self._execute(_upsert_sql("customers", self.CUSTOMER_COLUMNS, "customer_id"), row)
        return customer

    def find_customer_by_id(self, customer_id: str) -> Customer | None:
        row = self._fetchone("SELECT * FROM customers WHERE customer_id = %s", (customer_id,))
        return Customer(**row) if row else None

    # Pledges
    def save_pledge(self, pledge: Pledge) -> Pledge:
        if self.find_customer_by_id(pledge.customer_id) is None:
            raise ReferentialIntegrityError(f"Customer {pledge.customer_id} not found")
        if pledge.pledge_id is None:
            pledge = replace(pledge, pledge_id=uuid.uuid4().hex)
        row = {c: getattr(pledge, c) for c in self.PLEDGE_COLUMNS}
        row["status"] = pledge.status.value
        self._execute(_upsert_sql("pledges", self.PLEDGE_COLUMNS, "pledge_id"), row)
        return pledge

    def find_pledge_by_id(self, pledge_id: str) -> Pledge | None:
        row = self._fetchone("SELECT * FROM pledges WHERE pledge_id = %s", (pledge_id,))
        return Pledge(**row) if row else None

    def find_pledge_for_update(self, pledge_id: str) -> Pledge | None:
        """Row-locked read; the lock lasts until the enclosing ``transaction()`` ends.

        Concurrent payments on one pledge queue on this lock.
        """
        row = self._fetchone("SELECT * FROM pledges WHERE pledge_id = %s FOR UPDATE", (pledge_id,))
        return Pledge(**row) if row else None

    def find_all_pledges(self) -> list[Pledge]:
        rows = self._fetchall("SELECT * FROM pledges ORDER BY created_at")
        return [Pledge(**row) for row in rows]

    def find_pledges_by_customer_id(self, customer_id: str) -> list[Pledge]:
        rows = self._fetchall(
            "SELECT * FROM pledges WHERE customer_id = %s ORDER BY created_at",
            (customer_id,),
        )
        return [Pledge(**row) for row in rows]

    def delete_pledge_by_id(self, pledge_id: str) -> None:
        self._execute("DELETE FROM pledges WHERE pledge_id = %s", (pledge_id,))

    # Payments
    def save_payment(self, payment: Payment) -> Payment:
        if self.find_pledge_by_id(payment.pledge_id) is None:
            raise ReferentialIntegrityError(f"Pledge {payment.pledge_id} not found")
        if payment.payment_id is None:
            payment = replace(payment, payment_id=uuid.uuid4().hex)
        row = {c: getattr(payment, c) for c in self.PAYMENT_COLUMNS}
        self._execute(_upsert_sql("payments", self.PAYMENT_COLUMNS, "payment_id"), row)
        return payment

    def find_payment_by_id(self, payment_id: str) -> Payment | None:
        row = self._fetchone("SELECT * FROM payments WHERE payment_id = %s", (payment_id,))
        return Payment(**row) if row else None

    def find_payments_by_pledge_id_order_by_date_desc(self, pledge_id: str) -> list[Payment]:
        rows = self._fetchall(
            "SELECT * FROM payments WHERE pledge_id = %s ORDER BY payment_date DESC",
            (pledge_id,),
        )
        return [Payment(**row) for row in rows]

    def sum_amount_by_pledge_id(self, pledge_id: str) -> Decimal:
        row = self._fetchone(
            "SELECT COALESCE(SUM(amount), 0) AS total FROM payments WHERE pledge_id = %s",
            (pledge_id,),
        )
        return Decimal(row["total"]) if row else ZERO

    def delete_payment_by_id(self, payment_id: str) -> None:
        self._execute("DELETE FROM payments WHERE payment_id = %s", (payment_id,))
