"""Configuration management for pledge-ledger."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pledge_ledger.exceptions import ConfigurationError


@dataclass
class KafkaConfig:
    """Kafka producer configuration for pledge notifications."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    linger_ms: int = 5
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "linger.ms": self.linger_ms,
            "retries": self.retries,
        }


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "pledges"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class NotificationConfig:
    """Best-effort pledge notification settings."""

    enabled: bool = True
    topic: str = "pledges.notifications"
    recipient: str | None = None


# (upper bound inclusive, monthly rate percent); None marks the open-ended slab
DEFAULT_RATE_SLABS: list[tuple[Decimal | None, Decimal]] = [
    (Decimal("10000"), Decimal("3")),
    (Decimal("50000"), Decimal("2.5")),
    (Decimal("100000"), Decimal("2")),
    (None, Decimal("1.5")),
]


@dataclass
class RateSlabConfig:
    """Amount-keyed default interest rates used when no rate is supplied."""

    slabs: list[tuple[Decimal | None, Decimal]] = field(
        default_factory=lambda: list(DEFAULT_RATE_SLABS)
    )

    @classmethod
    def from_json(cls, raw: str) -> "RateSlabConfig":
        """Parse ``[[upper, rate], ..., [null, rate]]`` into slabs."""
        import json

        try:
            rows = json.loads(raw)
            slabs = [
                (Decimal(str(upper)) if upper is not None else None, Decimal(str(rate)))
                for upper, rate in rows
            ]
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid RATE_SLABS value: {raw!r}") from e

        if not slabs:
            raise ConfigurationError("RATE_SLABS must define at least one slab")
        return cls(slabs=slabs)


@dataclass
class LedgerConfig:
    """Main configuration for pledge-ledger."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    rates: RateSlabConfig = field(default_factory=RateSlabConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables."""
        import os

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "pledges"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        notifications = NotificationConfig(
            enabled=os.getenv("NOTIFY_ENABLED", "true").lower() == "true",
            topic=os.getenv("NOTIFY_TOPIC", "pledges.notifications"),
            recipient=os.getenv("NOTIFY_RECIPIENT") or None,
        )

        slabs_str = os.getenv("RATE_SLABS")
        rates = RateSlabConfig.from_json(slabs_str) if slabs_str else RateSlabConfig()

        return cls(
            kafka=kafka,
            postgres=postgres,
            notifications=notifications,
            rates=rates,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
