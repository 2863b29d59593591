"""
In-process ``Store`` backed by dicts.

``atomic()`` snapshots the collections on entry of the outermost block and
restores them if the block raises.  Nested blocks join the outer one.  A
re-entrant lock serializes writers; reads copy under the same lock so they
see a consistent collection.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator

from fee_ledger.db.store import Collection, Store


class InMemoryStore(Store):
    def __init__(self) -> None:
        self._data: dict[Collection, dict[str, Any]] = {c: {} for c in Collection}
        self._lock = threading.RLock()
        self._depth = 0

    def list(self, collection: Collection) -> list[Any]:
        with self._lock:
            return list(self._data[collection].values())

    def get(self, collection: Collection, record_id: str) -> Any | None:
        with self._lock:
            return self._data[collection].get(record_id)

    def insert(self, collection: Collection, record: Any) -> Any:
        with self._lock:
            self._data[collection][record.id] = record
        return record

    def update(self, collection: Collection, record: Any) -> Any:
        with self._lock:
            if record.id not in self._data[collection]:
                raise KeyError(record.id)
            self._data[collection][record.id] = record
        return record

    def delete(self, collection: Collection, record_id: str) -> bool:
        with self._lock:
            return self._data[collection].pop(record_id, None) is not None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            saved = {c: dict(rows) for c, rows in self._data.items()} if outermost else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if outermost:
                    self._data = saved
                raise
            finally:
                self._depth -= 1
