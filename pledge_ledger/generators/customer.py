"""Customer generator."""

from __future__ import annotations

from datetime import datetime
from typing import Iterator

from pledge_ledger.generators.base import BaseGenerator
from pledge_ledger.models import Customer


class CustomerGenerator(BaseGenerator):
    """Generate sample pawn customers."""

    def generate(self) -> Customer:
        """Generate a single customer."""
        return Customer(
            customer_id=self.fake.uuid4(),
            name=self.fake.name()[:100],
            phone="".join(self.random.choice("0123456789") for _ in range(10)),
            email=self.fake.email(),
            address=self.fake.address().replace("\n", ", ")[:500],
            created_at=self.days_before(datetime.now(), 3 * 365),
        )

    def generate_batch(self, count: int) -> Iterator[Customer]:
        """Generate ``count`` customers.

        Yields
        ------
        Customer
            Generated customers.
        """
        for _ in range(count):
            yield self.generate()
