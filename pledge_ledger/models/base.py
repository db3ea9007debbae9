"""Base models shared across the ledger."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Standard event envelope for outbound notifications."""

    event_id: str
    event_type: str  # entity.action (e.g., pledge.created)
    event_time: datetime
    source: str  # Service/system that emitted
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)
