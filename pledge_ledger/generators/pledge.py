"""Pledge request generator."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from pledge_ledger.generators.base import BaseGenerator
from pledge_ledger.models import PledgeRequest, PledgeStatus


class PledgeGenerator(BaseGenerator):
    """Generate sample pledge requests for gold and silver collateral."""

    # item type -> (purities, weight range in grams, advance per gram)
    ITEMS = {
        "GOLD_CHAIN": (["22K", "18K"], (5, 60), Decimal("4500")),
        "GOLD_RING": (["22K", "18K", "14K"], (2, 15), Decimal("4200")),
        "GOLD_BANGLE": (["22K"], (10, 80), Decimal("4500")),
        "SILVER_ANKLET": (["925"], (20, 200), Decimal("60")),
    }

    # Roughly a third of requests carry an owner-supplied rate
    EXPLICIT_RATE_SHARE = 0.35
    EXPLICIT_RATES = [Decimal("1.5"), Decimal("2"), Decimal("2.5"), Decimal("3")]

    def generate(self, customer_id: str, now: datetime | None = None) -> PledgeRequest:
        """Generate a pledge request for ``customer_id``.

        Parameters
        ----------
        customer_id : str
            Owning customer.
        now : datetime | None
            Reference instant for the deadline (default: current time).

        Returns
        -------
        PledgeRequest
            Request ready for ``PledgeService.create_pledge``.
        """
        now = now or datetime.now()
        item_type = self.random.choice(list(self.ITEMS))
        purities, (low, high), per_gram = self.ITEMS[item_type]

        weight = self.decimal_between(low, high)
        # Advance rounded down to the nearest 100
        amount = (weight * per_gram * Decimal("0.75")) // 100 * 100

        rate = None
        if self.random.random() < self.EXPLICIT_RATE_SHARE:
            rate = self.random.choice(self.EXPLICIT_RATES)

        return PledgeRequest(
            customer_id=customer_id,
            amount=max(amount, Decimal("500")),
            interest_rate=rate,
            status=PledgeStatus.ACTIVE,
            title=f"{item_type.replace('_', ' ').title()} pledge",
            description=self.fake.sentence(nb_words=8),
            deadline=now + timedelta(days=self.random.choice([90, 180, 365])),
            item_type=item_type,
            weight=weight,
            purity=self.random.choice(purities),
            notes=None,
            customer_photo=self.fake.image_url(),
            item_photo=self.fake.image_url(),
            receipt_photo=None,
        )
