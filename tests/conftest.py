"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from pledge_ledger.engine.lifecycle import PledgeService
from pledge_ledger.models import Customer, Pledge, PledgeStatus
from pledge_ledger.rates import SlabRateTable
from pledge_ledger.store import InMemoryLedgerStore

T0 = datetime(2024, 1, 1, 10, 0, 0)


class FixedClock:
    """Clock that returns a settable instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now += timedelta(days=days, hours=hours)


@pytest.fixture
def t0() -> datetime:
    """Loan origination instant used across tests."""
    return T0


@pytest.fixture
def clock() -> FixedClock:
    """Clock starting at T0."""
    return FixedClock(T0)


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Create a fresh store for each test."""
    return InMemoryLedgerStore()


@pytest.fixture
def rate_table() -> SlabRateTable:
    """Two-slab rate table: 3% up to 10 000, 2% above."""
    return SlabRateTable([(Decimal("10000"), Decimal("3")), (None, Decimal("2"))])


@pytest.fixture
def customer(store: InMemoryLedgerStore) -> Customer:
    """Stored sample customer."""
    return store.save_customer(
        Customer(
            customer_id="cust-test-001",
            name="Test Customer",
            phone="9876543210",
            email="test@test.com",
            address="12 MG Road, Pune",
            created_at=T0 - timedelta(days=30),
        )
    )


@pytest.fixture
def service(store: InMemoryLedgerStore, rate_table: SlabRateTable, clock: FixedClock) -> PledgeService:
    """Pledge service over the in-memory store and fixed clock."""
    return PledgeService(store, rate_table, clock=clock)


@pytest.fixture
def make_pledge(store: InMemoryLedgerStore, customer: Customer):
    """Factory that stores a pledge created at T0."""

    def _make(
        principal: Decimal | int | str | None = 10000,
        rate: Decimal | int | str | None = 2,
        status: PledgeStatus = PledgeStatus.ACTIVE,
        created_at: datetime | None = T0,
    ) -> Pledge:
        return store.save_pledge(
            Pledge(
                pledge_id=None,
                customer_id=customer.customer_id,
                principal=principal,
                monthly_rate_percent=rate,
                status=status,
                created_at=created_at,
                last_interest_accrued_at=created_at,
            )
        )

    return _make
