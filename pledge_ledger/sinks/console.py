"""Console notifier for local runs of the simulation."""

from collections import Counter

from pledge_ledger.models import Event
from pledge_ledger.sinks.serialization import encode_event


class ConsoleNotifier:
    """Print pledge events to stdout, one JSON document per event."""

    def __init__(self, pretty: bool = True) -> None:
        """Initialize console notifier.

        Parameters
        ----------
        pretty : bool
            Indent each JSON document.
        """
        self.pretty = pretty
        self.counts: Counter[str] = Counter()
        self.pledges: set[str] = set()

    def send(self, event: Event) -> None:
        print(encode_event(event, pretty=self.pretty))
        self.counts[event.event_type] += 1
        self.pledges.add(event.subject)

    def close(self) -> None:
        """Print a per-event-type summary."""
        print(f"\n{'=' * 60}")
        print(f"Pledge notifications: {sum(self.counts.values())} for {len(self.pledges)} pledges")
        print("=" * 60)
        for event_type, count in sorted(self.counts.items()):
            print(f"  {event_type}: {count}")
