"""Interest accrual for pledges.

Two formulas live here:

- the tiered formula: the first 30 days cost one flat month of interest,
  every day beyond that costs one daily increment. Used by payment
  application, projections and the strict report.
- simple daily proration, used only when a rate change snapshots the
  interest accrued under the old rate.

The lenient functions treat a missing principal or rate as zero. The
``calculate_*`` functions are strict and raise ``MissingPrerequisiteError``
instead.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from pledge_ledger.exceptions import MissingPrerequisiteError
from pledge_ledger.models import Payment, Pledge
from pledge_ledger.money import (
    DAYS_PER_PERIOD,
    ZERO,
    daily_interest,
    elapsed_days,
    monthly_interest,
    to_decimal,
)


def tiered_interest(principal: Decimal, monthly_rate_percent: Decimal, days: int) -> Decimal:
    """Tiered interest for a known number of elapsed days (clamped at zero)."""
    days = max(0, days)
    interest = monthly_interest(principal, monthly_rate_percent)
    if days <= DAYS_PER_PERIOD:
        return interest
    return interest + daily_interest(principal, monthly_rate_percent, days - DAYS_PER_PERIOD)


def accrued_interest(
    principal: Decimal | None,
    monthly_rate_percent: Decimal | None,
    accrual_start: datetime | None,
    as_of: datetime,
) -> Decimal:
    """Interest owed on ``principal`` from ``accrual_start`` to ``as_of``.

    Parameters
    ----------
    principal : Decimal | None
        Current outstanding base. ``None`` counts as zero.
    monthly_rate_percent : Decimal | None
        Percent per 30-day period. ``None`` counts as zero.
    accrual_start : datetime | None
        Latest payment date, else pledge creation.
    as_of : datetime
        Valuation instant.

    Returns
    -------
    Decimal
        Accrued interest; never negative for non-negative inputs.
    """
    principal = to_decimal(principal) or ZERO
    rate = to_decimal(monthly_rate_percent) or ZERO
    return tiered_interest(principal, rate, elapsed_days(accrual_start, as_of))


def simple_accrued_interest(
    principal: Decimal | None,
    monthly_rate_percent: Decimal | None,
    accrual_start: datetime | None,
    as_of: datetime,
) -> Decimal:
    """Straight daily proration with no minimum month."""
    principal = to_decimal(principal) or ZERO
    rate = to_decimal(monthly_rate_percent) or ZERO
    return daily_interest(principal, rate, elapsed_days(accrual_start, as_of))


def accrual_start_for(pledge: Pledge, payments: Iterable[Payment]) -> datetime | None:
    """Latest payment date, falling back to the pledge's creation instant.

    ``payments`` is expected newest first, as the store returns them; the
    maximum is taken anyway so unordered input is still correct.
    """
    dates = [p.payment_date for p in payments if p.payment_date is not None]
    if dates:
        return max(dates)
    return pledge.created_at


def projected_balance(pledge: Pledge, payments: Iterable[Payment], as_of: datetime) -> Decimal:
    """Principal plus interest accrued since the last accrual reset."""
    principal = pledge.principal or ZERO
    start = accrual_start_for(pledge, payments)
    if start is None:
        raise MissingPrerequisiteError("No payment or creation date to accrue from")
    return principal + accrued_interest(principal, pledge.monthly_rate_percent, start, as_of)


# Strict report path


def calculate_daily_interest(pledge: Pledge) -> Decimal:
    """One day of interest on the current principal."""
    if pledge.principal is None or pledge.monthly_rate_percent is None:
        raise MissingPrerequisiteError("Amount or interest rate is not set")
    return daily_interest(pledge.principal, pledge.monthly_rate_percent)


def calculate_total_interest_to_date(pledge: Pledge, as_of: datetime) -> Decimal:
    """Tiered interest on the current principal since the pledge was created."""
    if pledge.created_at is None:
        raise MissingPrerequisiteError("Created date is not set")
    if pledge.principal is None or pledge.monthly_rate_percent is None:
        raise MissingPrerequisiteError("Amount or interest rate is not set")
    return tiered_interest(
        pledge.principal,
        pledge.monthly_rate_percent,
        elapsed_days(pledge.created_at, as_of),
    )


def calculate_total_amount(pledge: Pledge, as_of: datetime) -> Decimal:
    """Current principal plus strict interest to date."""
    interest = calculate_total_interest_to_date(pledge, as_of)
    return pledge.principal + interest
