"""Storage collaborators for the ledger engine."""

from pledge_ledger.store.base import LedgerStore
from pledge_ledger.store.memory import InMemoryLedgerStore

__all__ = ["InMemoryLedgerStore", "LedgerStore"]
