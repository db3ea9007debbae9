"""Day-count and rate conversion helpers.

All rates are monthly percentages over a 30-day period. Products are
formed before dividing so that whole-number inputs stay exact in
``Decimal`` (``10000 * 2 * 15 / 3000 == 100``).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

DAYS_PER_PERIOD = 30
PERCENT = Decimal(100)
ZERO = Decimal(0)

_SECONDS_PER_DAY = 86400


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a numeric value into ``Decimal``; ``None`` passes through."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, (int, str)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def whole_days_between(start: datetime, end: datetime) -> int:
    """Count complete 24h periods from ``start`` to ``end``, truncating toward zero.

    Negative when ``end`` precedes ``start``.
    """
    seconds = (end - start).total_seconds()
    days = int(abs(seconds) // _SECONDS_PER_DAY)
    return days if seconds >= 0 else -days


def elapsed_days(start: datetime | None, end: datetime) -> int:
    """Whole days elapsed, clamped at zero. A missing start counts as zero days."""
    if start is None:
        return 0
    return max(0, whole_days_between(start, end))


def monthly_interest(principal: Decimal, rate_percent: Decimal) -> Decimal:
    """One full period of interest."""
    return principal * rate_percent / PERCENT


def daily_rate(rate_percent: Decimal) -> Decimal:
    """Per-day fraction for a monthly percentage."""
    return rate_percent / PERCENT / DAYS_PER_PERIOD


def daily_interest(principal: Decimal, rate_percent: Decimal, days: int = 1) -> Decimal:
    """Pro-rata interest for ``days`` days."""
    return principal * rate_percent * days / (PERCENT * DAYS_PER_PERIOD)
