"""
Module: fee_ledger.db.sql_store
Responsibility: ``Store`` implementation over a SQLAlchemy ORM session.
Architecture position: Ledger > DB.  Converts between domain DTOs and the ORM
    models in ``fee_ledger.models``.

Invariants enforced:
    - The store never commits.  Writes are flushed so later reads in the same
      session see them; the caller owns the outer transaction (typically via
      ``engine.session_scope``).
    - ``atomic()`` is a SAVEPOINT (``Session.begin_nested``).  An exception
      inside the block rolls back to the savepoint and propagates.
    - Access is serialized with a re-entrant lock, since a Session is not safe
      for concurrent use.

Failure modes:
    - KeyError from ``update`` when the row does not exist.
    - SQLAlchemy errors (IntegrityError etc.) propagate unchanged.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from fee_ledger.db.store import Collection, Store
from fee_ledger.models import (
    DependentModel,
    NotificationModel,
    SchoolModel,
    TransactionModel,
    UserModel,
)

_MODELS = {
    Collection.USERS: UserModel,
    Collection.SCHOOLS: SchoolModel,
    Collection.DEPENDENTS: DependentModel,
    Collection.TRANSACTIONS: TransactionModel,
    Collection.NOTIFICATIONS: NotificationModel,
}


class SqlAlchemyStore(Store):
    """Session-backed store.  One instance per session."""

    def __init__(self, session: Session):
        self._session = session
        self._lock = threading.RLock()

    @property
    def session(self) -> Session:
        return self._session

    def list(self, collection: Collection) -> list[Any]:
        model = _MODELS[collection]
        with self._lock:
            rows = self._session.scalars(select(model)).all()
            return [row.to_dto() for row in rows]

    def get(self, collection: Collection, record_id: str) -> Any | None:
        with self._lock:
            row = self._session.get(_MODELS[collection], record_id)
            return row.to_dto() if row is not None else None

    def insert(self, collection: Collection, record: Any) -> Any:
        with self._lock:
            self._session.add(_MODELS[collection].from_dto(record))
            self._session.flush()
        return record

    def update(self, collection: Collection, record: Any) -> Any:
        with self._lock:
            row = self._session.get(_MODELS[collection], record.id)
            if row is None:
                raise KeyError(record.id)
            row.apply(record)
            self._session.flush()
        return record

    def delete(self, collection: Collection, record_id: str) -> bool:
        with self._lock:
            row = self._session.get(_MODELS[collection], record_id)
            if row is None:
                return False
            self._session.delete(row)
            self._session.flush()
            return True

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            with self._session.begin_nested():
                yield
