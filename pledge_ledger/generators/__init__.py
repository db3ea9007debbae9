"""Sample data generators for demos and simulations."""

from pledge_ledger.generators.customer import CustomerGenerator
from pledge_ledger.generators.pledge import PledgeGenerator

__all__ = ["CustomerGenerator", "PledgeGenerator"]
