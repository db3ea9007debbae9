"""Interest accrual, payment application and pledge lifecycle."""

from pledge_ledger.engine.interest import (
    accrued_interest,
    calculate_total_amount,
    calculate_total_interest_to_date,
    simple_accrued_interest,
)
from pledge_ledger.engine.lifecycle import PledgeService
from pledge_ledger.engine.payments import (
    CapitalizingPayment,
    DirectPayment,
    PaymentOutcome,
    PaymentStrategy,
)
from pledge_ledger.engine.projection import PledgeView, project

__all__ = [
    "CapitalizingPayment",
    "DirectPayment",
    "PaymentOutcome",
    "PaymentStrategy",
    "PledgeService",
    "PledgeView",
    "accrued_interest",
    "calculate_total_amount",
    "calculate_total_interest_to_date",
    "project",
    "simple_accrued_interest",
]
