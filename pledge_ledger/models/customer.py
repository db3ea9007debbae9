"""Customer model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Customer:
    """Pawn customer; referenced by pledges, never edited by the engine."""

    customer_id: str | None
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    is_active: bool = True
