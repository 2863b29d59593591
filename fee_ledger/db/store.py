"""
Module: fee_ledger.db.store
Responsibility: The persistence contract ``LedgerStore`` is written against.
Architecture position: Ledger > DB.  Implemented by ``InMemoryStore`` and
    ``SqlAlchemyStore``; consumed only by ``services.ledger_store``.

Contract:
    Records in and out are the frozen DTOs from ``domain.dtos``.  Backends
    do no validation, id generation or cascading; ``LedgerStore`` owns all of
    that.  ``atomic()`` groups writes into one unit: on exception every write
    made inside the block is undone, then the exception propagates.

Failure modes:
    - KeyError from ``update`` when the record does not exist.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from enum import Enum
from typing import Any


class Collection(str, Enum):
    USERS = "users"
    SCHOOLS = "schools"
    DEPENDENTS = "dependents"
    TRANSACTIONS = "transactions"
    NOTIFICATIONS = "notifications"


class Store(ABC):
    """Abstract record store keyed by (collection, id)."""

    @abstractmethod
    def list(self, collection: Collection) -> list[Any]:
        """All records.  Order is backend-defined; callers sort."""
        ...

    @abstractmethod
    def get(self, collection: Collection, record_id: str) -> Any | None:
        ...

    @abstractmethod
    def insert(self, collection: Collection, record: Any) -> Any:
        ...

    @abstractmethod
    def update(self, collection: Collection, record: Any) -> Any:
        ...

    @abstractmethod
    def delete(self, collection: Collection, record_id: str) -> bool:
        """Remove a record.  Returns False if it did not exist."""
        ...

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        ...
