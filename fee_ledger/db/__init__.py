"""
Persistence layer: the ``Store`` contract and its two backends.

``InMemoryStore`` needs nothing; ``SqlAlchemyStore`` wraps a Session obtained
from ``fee_ledger.db.engine``.
"""

from fee_ledger.db.memory_store import InMemoryStore
from fee_ledger.db.store import Collection, Store

__all__ = ["Collection", "InMemoryStore", "Store"]
