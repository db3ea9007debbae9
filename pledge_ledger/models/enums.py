"""Enumeration types for pledge entities."""

from enum import Enum

from pledge_ledger.exceptions import InvalidInputError


class PledgeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    COMPLETED = "COMPLETED"
    DEFAULTED = "DEFAULTED"
    CLOSED = "CLOSED"

    @classmethod
    def parse(cls, value: "PledgeStatus | str | None") -> "PledgeStatus":
        """Coerce a raw status into a member, rejecting anything else."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise InvalidInputError(f"Invalid pledge status: {value!r}")


class PaymentType(str, Enum):
    """Labels written by the direct payment path."""

    FULL = "FULL"
    PARTIAL = "PARTIAL"


def is_valid_status(value: object) -> bool:
    """Return True when ``value`` names one of the five pledge statuses."""
    if isinstance(value, PledgeStatus):
        return True
    return isinstance(value, str) and value in PledgeStatus._value2member_map_
