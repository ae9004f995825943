from .ledger_base import LedgerBase
from .memory import InMemoryLedger

__all__ = ["LedgerBase", "InMemoryLedger"]
