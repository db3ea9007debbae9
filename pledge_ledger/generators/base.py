"""Base generator class for sample ledger data."""

from __future__ import annotations

import random
from abc import ABC
from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal

from faker import Faker


class BaseGenerator(ABC):
    """Seeded Faker and ``random.Random`` shared by the ledger generators.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``en_IN``; pawn lending is priced in rupees).
    """

    def __init__(self, seed: int | None = None, locale: str = "en_IN") -> None:
        self.fake = Faker(locale)
        self.random = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def days_before(self, now: datetime, max_days: int) -> datetime:
        """Instant between ``max_days`` days before ``now`` and ``now``."""
        return now - timedelta(days=self.random.randint(0, max_days))

    def decimal_between(self, low: float, high: float, places: int = 3) -> Decimal:
        """Uniform draw truncated to ``places`` decimal places."""
        value = Decimal(str(self.random.uniform(low, high)))
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)
