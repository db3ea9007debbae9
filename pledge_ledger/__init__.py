"""Pledge lifecycle and interest-accrual engine for collateral loans."""

from pledge_ledger.engine.lifecycle import PledgeService
from pledge_ledger.engine.payments import CapitalizingPayment, DirectPayment
from pledge_ledger.engine.projection import PledgeView, project

__version__ = "0.1.0"

__all__ = [
    "CapitalizingPayment",
    "DirectPayment",
    "PledgeService",
    "PledgeView",
    "__version__",
    "project",
]
