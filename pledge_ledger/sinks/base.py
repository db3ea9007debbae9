"""Pledge notifications and best-effort dispatch."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Protocol

from pledge_ledger.config import NotificationConfig
from pledge_ledger.models import Event, Pledge
from pledge_ledger.sinks.serialization import to_record

logger = logging.getLogger(__name__)

EVENT_SOURCE = "pledge-ledger"


@dataclass
class PledgeNotification:
    """Final values of a pledge after create/edit, as sent to notifiers."""

    pledge_id: str
    customer_id: str
    principal: Decimal | None
    monthly_rate_percent: Decimal | None
    customer_photo: str | None = None
    item_photo: str | None = None
    receipt_photo: str | None = None
    recipient: str | None = None

    @classmethod
    def from_pledge(cls, pledge: Pledge, recipient: str | None = None) -> "PledgeNotification":
        return cls(
            pledge_id=pledge.pledge_id,
            customer_id=pledge.customer_id,
            principal=pledge.principal,
            monthly_rate_percent=pledge.monthly_rate_percent,
            customer_photo=pledge.customer_photo,
            item_photo=pledge.item_photo,
            receipt_photo=pledge.receipt_photo,
            recipient=recipient,
        )

    @property
    def photos(self) -> list[str]:
        """Photo references that are set, in customer/item/receipt order."""
        return [p for p in (self.customer_photo, self.item_photo, self.receipt_photo) if p]

    def to_event(self, event_type: str, event_time: datetime) -> Event:
        return Event(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            event_time=event_time,
            source=EVENT_SOURCE,
            subject=self.pledge_id,
            data=to_record(self),
            metadata={"photos": self.photos},
        )


class Notifier(Protocol):
    """Out-of-band delivery of pledge events."""

    def send(self, event: Event) -> None: ...


class NotificationDispatcher:
    """Send pledge events without letting delivery affect the ledger.

    Every failure (disabled, no notifier, notifier error) is logged and
    reported as ``False``; nothing propagates to the caller.
    """

    def __init__(
        self,
        notifier: Notifier | None,
        config: NotificationConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.notifier = notifier
        self.config = config or NotificationConfig()
        self.clock = clock

    def notify(self, pledge: Pledge, event_type: str) -> bool:
        if not self.config.enabled:
            logger.debug("Notifications disabled; skipping %s for pledge %s", event_type, pledge.pledge_id)
            return False
        if self.notifier is None:
            logger.debug("No notifier configured; skipping %s for pledge %s", event_type, pledge.pledge_id)
            return False

        payload = PledgeNotification.from_pledge(pledge, recipient=self.config.recipient)
        event = payload.to_event(event_type, self.clock())
        try:
            self.notifier.send(event)
        except Exception:
            logger.warning(
                "Failed to send %s notification for pledge %s",
                event_type,
                pledge.pledge_id,
                exc_info=True,
            )
            return False

        logger.info("Sent %s notification for pledge %s", event_type, pledge.pledge_id)
        return True
