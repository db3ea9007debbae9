"""Kafka notifier for pledge events."""

import logging
from dataclasses import dataclass
from typing import Any

from confluent_kafka import Producer

from pledge_ledger.config import KafkaConfig
from pledge_ledger.exceptions import NotificationError
from pledge_ledger.models import Event
from pledge_ledger.sinks.serialization import encode_event

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaNotifier:
    """Publish pledge events to a Kafka topic, keyed by pledge id."""

    def __init__(
        self,
        config: KafkaConfig | str,
        topic: str = "pledges.notifications",
        producer: Any | None = None,
    ) -> None:
        """Initialize Kafka notifier.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        topic : str
            Destination topic.
        producer : confluent_kafka.Producer | None
            Pre-built producer; one is created from ``config`` when omitted.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.topic = topic
        self.producer = producer if producer is not None else Producer(config.to_dict())
        self.stats = ProducerStats()

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def send(self, event: Event) -> None:
        """Queue one event; producer errors surface as ``NotificationError``."""
        value = encode_event(event).encode("utf-8")
        try:
            self.producer.produce(
                topic=self.topic,
                key=event.subject.encode("utf-8") if event.subject else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KeyError, ValueError) as e:
            raise NotificationError(f"Could not queue {event.event_type}: {e}") from e
        self.stats.sent += 1
        self.producer.poll(0)

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka notifier closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
