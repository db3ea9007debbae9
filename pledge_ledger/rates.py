"""Default interest rates keyed by loan amount."""

from decimal import Decimal
from typing import Protocol

from pledge_ledger.config import RateSlabConfig
from pledge_ledger.exceptions import ConfigurationError
from pledge_ledger.money import to_decimal


class RateTable(Protocol):
    """Source of a monthly rate percent for a new loan amount."""

    def rate_for_amount(self, amount: Decimal | None) -> Decimal: ...


class SlabRateTable:
    """Amount slabs, each with a monthly rate percent.

    Slabs are ``(upper_bound, rate)`` pairs in ascending order; an amount
    falls into the first slab whose upper bound it does not exceed. A
    ``None`` bound is open-ended and must come last.
    """

    def __init__(self, slabs: list[tuple[Decimal | None, Decimal]]) -> None:
        if not slabs:
            raise ConfigurationError("Rate table needs at least one slab")
        bounds = [upper for upper, _ in slabs]
        if None in bounds[:-1]:
            raise ConfigurationError("Only the last rate slab may be open-ended")
        closed = [b for b in bounds if b is not None]
        if closed != sorted(closed):
            raise ConfigurationError("Rate slabs must be in ascending order")

        self.slabs = [(to_decimal(upper), to_decimal(rate)) for upper, rate in slabs]

    @classmethod
    def from_config(cls, config: RateSlabConfig) -> "SlabRateTable":
        return cls(config.slabs)

    def rate_for_amount(self, amount: Decimal | None) -> Decimal:
        value = to_decimal(amount) or Decimal(0)
        for upper, rate in self.slabs:
            if upper is None or value <= upper:
                return rate
        # Amount above every closed slab
        return self.slabs[-1][1]
