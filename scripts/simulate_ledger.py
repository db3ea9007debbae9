#!/usr/bin/env python3
"""Simulate a pledge book over time.

Seeds customers and pledges, then walks a simulated clock forward day by
day, applying random payments through the capitalizing strategy (and,
with ``--direct-share``, the direct strategy) and running the auto-close
sweep. Storage is in-memory unless ``--postgres`` is given; notifications
go to the console, to Kafka with ``--kafka``, or nowhere with
``--no-notify``.
"""

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pledge_ledger.config import LedgerConfig
from pledge_ledger.engine.lifecycle import PledgeService
from pledge_ledger.exceptions import InvalidEntityStateError
from pledge_ledger.generators import CustomerGenerator, PledgeGenerator
from pledge_ledger.logging import setup_logging
from pledge_ledger.models import PledgeStatus
from pledge_ledger.rates import SlabRateTable
from pledge_ledger.sinks import ConsoleNotifier, KafkaNotifier, NotificationDispatcher
from pledge_ledger.store import InMemoryLedgerStore

logger = logging.getLogger(__name__)


class SimulatedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int) -> None:
        self.now += timedelta(days=days)


def build_store(args: argparse.Namespace, config: LedgerConfig):
    if args.postgres:
        from pledge_ledger.store.postgres import PostgresLedgerStore

        store = PostgresLedgerStore.connect(config.postgres.connection_string)
        store.create_schema()
        return store
    return InMemoryLedgerStore()


def build_notifier(args: argparse.Namespace, config: LedgerConfig, clock: SimulatedClock):
    if args.no_notify:
        return None, None
    if args.kafka:
        sink = KafkaNotifier(config.kafka, topic=config.notifications.topic)
    else:
        sink = ConsoleNotifier(pretty=False)
    return sink, NotificationDispatcher(sink, config.notifications, clock=clock)


def run(args: argparse.Namespace) -> dict[str, int]:
    config = LedgerConfig.from_env()
    setup_logging(level=args.log_level or config.log_level, format_type=config.log_format)

    rng = random.Random(args.seed)
    clock = SimulatedClock(datetime.now() - timedelta(days=args.days))
    store = build_store(args, config)
    sink, dispatcher = build_notifier(args, config, clock)
    service = PledgeService(
        store,
        SlabRateTable.from_config(config.rates),
        notifier=dispatcher,
        clock=clock,
    )

    customer_gen = CustomerGenerator(seed=args.seed)
    pledge_gen = PledgeGenerator(seed=args.seed)

    pledge_ids: list[str] = []
    for customer in customer_gen.generate_batch(args.customers):
        customer = store.save_customer(customer)
        for _ in range(rng.randint(1, args.max_pledges)):
            view = service.create_pledge(pledge_gen.generate(customer.customer_id, clock()))
            pledge_ids.append(view.pledge_id)
    logger.info("Seeded %d customers with %d pledges", args.customers, len(pledge_ids))

    counts = {"capitalizing": 0, "direct": 0, "rejected": 0}
    for _ in range(args.days):
        clock.advance(1)
        for pledge_id in pledge_ids:
            if rng.random() > args.payment_rate:
                continue
            view = service.get_pledge(pledge_id)
            if view.status == PledgeStatus.CLOSED or not view.remaining_amount:
                continue
            share = Decimal(str(round(rng.uniform(0.1, 1.1), 2)))
            amount = (view.remaining_amount * share).quantize(Decimal("1"))
            if amount <= 0:
                continue
            try:
                if rng.random() < args.direct_share:
                    service.record_payment(pledge_id, amount)
                    counts["direct"] += 1
                else:
                    service.apply_payment(pledge_id, amount, payment_type="CASH")
                    counts["capitalizing"] += 1
            except InvalidEntityStateError as e:
                counts["rejected"] += 1
                logger.debug("Payment rejected for %s: %s", pledge_id, e)
        service.reconcile()

    views = service.list_pledges()
    by_status: dict[str, int] = {}
    for view in views:
        by_status[view.status.value] = by_status.get(view.status.value, 0) + 1
    counts.update(by_status)

    logger.info("Simulation complete: %s", counts)
    if sink is not None:
        sink.close()
    return counts


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--customers", type=int, default=20, help="Number of customers")
    parser.add_argument("--max-pledges", type=int, default=3, help="Max pledges per customer")
    parser.add_argument("--days", type=int, default=120, help="Simulated days")
    parser.add_argument("--payment-rate", type=float, default=0.03, help="Daily chance of a payment per pledge")
    parser.add_argument("--direct-share", type=float, default=0.2, help="Share of payments using the direct path")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--postgres", action="store_true", help="Use PostgreSQL storage")
    parser.add_argument("--kafka", action="store_true", help="Publish notifications to Kafka")
    parser.add_argument("--no-notify", action="store_true", help="Disable notifications")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args()

    counts = run(args)
    for key, value in sorted(counts.items()):
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
