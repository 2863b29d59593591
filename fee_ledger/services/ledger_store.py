"""
LedgerStore -- the single mutation path for ledger records.

Responsibility:
    Owns id generation, timestamps, record validation, cascading deletes,
    per-dependent locking and atomic multi-record writes.  Every service
    reads and writes through a LedgerStore; nothing else touches a ``Store``
    backend.

Architecture position:
    Ledger > Services -- imperative shell over a ``Store`` backend
    (``InMemoryStore`` or ``SqlAlchemyStore``).  Domain rules come from
    ``fee_ledger.domain``; this module adds I/O, ids and time.

Invariants enforced:
    - Records are validated (``domain.validation``) before they are written.
    - Cascades run inside one ``atomic()`` block: deleting a user removes the
      dependents they own and those dependents' transactions; deleting a
      school removes its dependents and their transactions; deleting a
      dependent removes its transactions.
    - A school rename rewrites ``institution_name`` on linked dependents and
      transactions in the same unit of work.  Moving a dependent to another
      school moves its transactions with it.
    - Bursar accounts are never cascaded; a deleted school leaves their
      ``institution_id`` dangling, and scoping then shows them nothing.

Locking:
    ``dependent_lock(id)`` returns a re-entrant lock scoped to one dependent.
    Callers that need both take the dependent lock FIRST and open
    ``atomic()`` inside it.  LedgerStore itself never takes a dependent lock.

Failure modes:
    - ``*NotFoundError`` for unknown ids on get/update/delete.
    - InvalidInputError for records that break the data-model rules, or for
      unknown / immutable fields passed to ``update_*``.
"""

from __future__ import annotations

import dataclasses
import threading
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Iterator

from fee_ledger.db.store import Collection, Store
from fee_ledger.domain.clock import Clock, SystemClock
from fee_ledger.domain.dtos import (
    Cadence,
    Dependent,
    DependentStatus,
    LedgerSnapshot,
    Notification,
    NotificationDraft,
    Role,
    School,
    SettlementAccount,
    Transaction,
    TransactionStatus,
    User,
)
from fee_ledger.domain.ids import IdGenerator, TimestampIdGenerator
from fee_ledger.domain.validation import (
    parse_role,
    require_non_negative,
    validate_dependent,
    validate_school,
    validate_transaction,
    validate_user,
)
from fee_ledger.exceptions import (
    DependentNotFoundError,
    InvalidInputError,
    NotFoundError,
    NotificationNotFoundError,
    SchoolNotFoundError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from fee_ledger.logging_config import get_logger

logger = get_logger("services.ledger_store")

_NOT_FOUND: dict[Collection, type[NotFoundError]] = {
    Collection.USERS: UserNotFoundError,
    Collection.SCHOOLS: SchoolNotFoundError,
    Collection.DEPENDENTS: DependentNotFoundError,
    Collection.TRANSACTIONS: TransactionNotFoundError,
    Collection.NOTIFICATIONS: NotificationNotFoundError,
}

_MONEY_FIELDS = ("total_fee", "paid_amount", "next_installment_amount")


def _by_name(record: Any) -> tuple[str, str]:
    return (record.name.lower(), record.id)


def _by_created(record: Any) -> tuple[Any, str]:
    return (record.created_at, record.id)


def _apply_changes(record: Any, changes: dict[str, Any]) -> Any:
    if "id" in changes:
        raise InvalidInputError("id", "record ids cannot be changed")
    try:
        return dataclasses.replace(record, **changes)
    except TypeError as exc:
        raise InvalidInputError("changes", str(exc)) from None


class LedgerStore:
    """
    Validated, cascading record store for users, schools, dependents,
    transactions and notifications.

    Args:
        store: Backend holding the records.
        clock: Time source for ``created_at`` stamps.
        ids: Id source for new records.
    """

    def __init__(
        self,
        store: Store,
        clock: Clock | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._ids = ids or TimestampIdGenerator(self._clock)
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Units of work and locking
    # ------------------------------------------------------------------

    def atomic(self):
        """All writes inside the block commit together or not at all."""
        return self._store.atomic()

    @contextmanager
    def dependent_lock(self, dependent_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(dependent_id, threading.RLock())
        with lock:
            yield

    def snapshot(self) -> LedgerSnapshot:
        """Point-in-time copy of every collection."""
        with self._store.atomic():
            return LedgerSnapshot(
                users=self.list_users(),
                schools=self.list_schools(),
                dependents=self.list_dependents(),
                transactions=self.list_transactions(),
                notifications=self.list_notifications(),
            )

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _get(self, collection: Collection, record_id: str) -> Any:
        record = self._store.get(collection, record_id)
        if record is None:
            raise _NOT_FOUND[collection](record_id)
        return record

    def _delete(self, collection: Collection, record_id: str) -> None:
        if not self._store.delete(collection, record_id):
            raise _NOT_FOUND[collection](record_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(
        self,
        name: str,
        email: str,
        role: Role | str,
        institution_id: str | None = None,
        bank_details: SettlementAccount | None = None,
        phone_number: str | None = None,
    ) -> User:
        user = User(
            id=self._ids.next(),
            name=name,
            email=email,
            role=parse_role(role),
            institution_id=institution_id,
            bank_details=bank_details,
            phone_number=phone_number,
        )
        validate_user(user)
        return self._store.insert(Collection.USERS, user)

    def update_user(self, user_id: str, **changes: Any) -> User:
        if "role" in changes:
            changes["role"] = parse_role(changes["role"])
        user = _apply_changes(self.get_user(user_id), changes)
        validate_user(user)
        return self._store.update(Collection.USERS, user)

    def delete_user(self, user_id: str) -> None:
        """Remove a user, the dependents they own and those dependents' payments."""
        with self._store.atomic():
            self.get_user(user_id)
            owned = [d for d in self._store.list(Collection.DEPENDENTS) if d.owner_id == user_id]
            for dependent in owned:
                self._delete_dependent_cascade(dependent.id)
            self._delete(Collection.USERS, user_id)
        logger.debug(
            "user_cascade_deleted",
            extra={"user_id": user_id, "dependents_removed": len(owned)},
        )

    def get_user(self, user_id: str) -> User:
        return self._get(Collection.USERS, user_id)

    def list_users(self) -> tuple[User, ...]:
        return tuple(sorted(self._store.list(Collection.USERS), key=_by_name))

    def find_bursars(self, institution_id: str) -> tuple[User, ...]:
        return tuple(
            u for u in self.list_users()
            if u.role is Role.INSTITUTION_BURSAR and u.institution_id == institution_id
        )

    # ------------------------------------------------------------------
    # Schools
    # ------------------------------------------------------------------

    def add_school(
        self,
        name: str,
        address: str = "",
        contact_email: str = "",
        baseline_headcount: int = 0,
    ) -> School:
        school = School(
            id=self._ids.next(),
            name=name,
            address=address,
            contact_email=contact_email,
            baseline_headcount=baseline_headcount,
        )
        validate_school(school)
        return self._store.insert(Collection.SCHOOLS, school)

    def update_school(self, school_id: str, **changes: Any) -> School:
        """Update a school.  A new name is copied onto linked dependents and payments."""
        with self._store.atomic():
            before = self.get_school(school_id)
            school = _apply_changes(before, changes)
            validate_school(school)
            self._store.update(Collection.SCHOOLS, school)
            if school.name != before.name:
                self._propagate_school_name(school)
        return school

    def _propagate_school_name(self, school: School) -> None:
        renamed = 0
        for collection in (Collection.DEPENDENTS, Collection.TRANSACTIONS):
            for record in self._store.list(collection):
                if record.institution_id == school.id:
                    self._store.update(
                        collection,
                        dataclasses.replace(record, institution_name=school.name),
                    )
                    renamed += 1
        logger.debug(
            "school_name_propagated",
            extra={"school_id": school.id, "records_updated": renamed},
        )

    def delete_school(self, school_id: str) -> None:
        """Remove a school, its dependents and their payments."""
        with self._store.atomic():
            self.get_school(school_id)
            for dependent in self._store.list(Collection.DEPENDENTS):
                if dependent.institution_id == school_id:
                    self._delete_dependent_cascade(dependent.id)
            self._delete(Collection.SCHOOLS, school_id)

    def delete_all_schools(self) -> int:
        """Remove every school (with cascades).  Returns how many were removed."""
        with self._store.atomic():
            schools = self._store.list(Collection.SCHOOLS)
            for school in schools:
                self.delete_school(school.id)
        return len(schools)

    def get_school(self, school_id: str) -> School:
        return self._get(Collection.SCHOOLS, school_id)

    def list_schools(self) -> tuple[School, ...]:
        return tuple(sorted(self._store.list(Collection.SCHOOLS), key=_by_name))

    # ------------------------------------------------------------------
    # Dependents
    # ------------------------------------------------------------------

    def add_dependent(
        self,
        owner_id: str,
        name: str,
        institution_id: str,
        grade: str,
        total_fee: Any,
        cadence: Cadence = Cadence.MONTHLY,
        next_installment_amount: Any = Decimal("0"),
        paid_amount: Any = Decimal("0"),
        next_due_date: date | None = None,
        status: DependentStatus | None = None,
    ) -> Dependent:
        """
        Create a dependent owned by ``owner_id`` at ``institution_id``.

        ``status`` defaults to Completed when the plan is already fully paid
        (including a zero fee) and OnTrack otherwise.

        Raises:
            UserNotFoundError / SchoolNotFoundError: unknown owner or school.
            InvalidInputError: the record breaks the data-model rules.
        """
        self.get_user(owner_id)
        school = self.get_school(institution_id)
        total = require_non_negative(total_fee, "total_fee")
        paid = require_non_negative(paid_amount, "paid_amount")
        if status is None:
            status = DependentStatus.COMPLETED if paid >= total else DependentStatus.ON_TRACK
        dependent = Dependent(
            id=self._ids.next(),
            owner_id=owner_id,
            name=name,
            institution_id=school.id,
            institution_name=school.name,
            grade=grade,
            total_fee=total,
            paid_amount=paid,
            next_installment_amount=require_non_negative(
                next_installment_amount, "next_installment_amount"
            ),
            next_due_date=next_due_date,
            status=status,
            cadence=cadence,
        )
        validate_dependent(dependent)
        return self._store.insert(Collection.DEPENDENTS, dependent)

    def update_dependent(self, dependent_id: str, **changes: Any) -> Dependent:
        for money in _MONEY_FIELDS:
            if money in changes:
                changes[money] = require_non_negative(changes[money], money)
        with self._store.atomic():
            current = self.get_dependent(dependent_id)
            if "institution_id" in changes:
                changes["institution_name"] = self.get_school(changes["institution_id"]).name
            dependent = _apply_changes(current, changes)
            validate_dependent(dependent)
            updated = self._store.update(Collection.DEPENDENTS, dependent)
            if dependent.institution_id != current.institution_id:
                self._move_transactions(dependent)
        return updated

    def _move_transactions(self, dependent: Dependent) -> None:
        moved = 0
        for tx in self._store.list(Collection.TRANSACTIONS):
            if tx.dependent_id == dependent.id:
                self._store.update(
                    Collection.TRANSACTIONS,
                    dataclasses.replace(
                        tx,
                        institution_id=dependent.institution_id,
                        institution_name=dependent.institution_name,
                    ),
                )
                moved += 1
        logger.debug(
            "dependent_moved",
            extra={
                "dependent_id": dependent.id,
                "institution_id": dependent.institution_id,
                "transactions_moved": moved,
            },
        )

    def delete_dependent(self, dependent_id: str) -> None:
        """Remove a dependent and its payments."""
        with self._store.atomic():
            self.get_dependent(dependent_id)
            self._delete_dependent_cascade(dependent_id)

    def _delete_dependent_cascade(self, dependent_id: str) -> None:
        for tx in self._store.list(Collection.TRANSACTIONS):
            if tx.dependent_id == dependent_id:
                self._store.delete(Collection.TRANSACTIONS, tx.id)
        self._store.delete(Collection.DEPENDENTS, dependent_id)
        with self._locks_guard:
            self._locks.pop(dependent_id, None)

    def get_dependent(self, dependent_id: str) -> Dependent:
        return self._get(Collection.DEPENDENTS, dependent_id)

    def list_dependents(self) -> tuple[Dependent, ...]:
        return tuple(sorted(self._store.list(Collection.DEPENDENTS), key=_by_name))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(
        self,
        dependent_id: str,
        amount: Any,
        payer_user_id: str | None = None,
        receipt_ref: str | None = None,
    ) -> Transaction:
        """
        Record a Pending payment against ``dependent_id``.

        Dependent name and school are copied from the dependent.  The payer
        defaults to the dependent's owner.
        """
        dependent = self.get_dependent(dependent_id)
        tx = Transaction(
            id=self._ids.next(),
            dependent_id=dependent.id,
            payer_user_id=payer_user_id or dependent.owner_id,
            dependent_name=dependent.name,
            institution_id=dependent.institution_id,
            institution_name=dependent.institution_name,
            amount=require_non_negative(amount, "amount"),
            created_at=self._clock.now_utc(),
            status=TransactionStatus.PENDING,
            receipt_ref=receipt_ref,
        )
        validate_transaction(tx)
        return self._store.insert(Collection.TRANSACTIONS, tx)

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        if "amount" in changes:
            changes["amount"] = require_non_negative(changes["amount"], "amount")
        tx = _apply_changes(self.get_transaction(transaction_id), changes)
        validate_transaction(tx)
        return self._store.update(Collection.TRANSACTIONS, tx)

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self._get(Collection.TRANSACTIONS, transaction_id)

    def list_transactions(self) -> tuple[Transaction, ...]:
        return tuple(sorted(self._store.list(Collection.TRANSACTIONS), key=_by_created))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def add_notification(self, draft: NotificationDraft) -> Notification:
        notification = Notification(
            id=self._ids.next(),
            target_user_id=draft.target_user_id,
            category=draft.category,
            title=draft.title,
            message=draft.message,
            created_at=self._clock.now_utc(),
            severity=draft.severity,
        )
        return self._store.insert(Collection.NOTIFICATIONS, notification)

    def add_notifications(self, drafts: Iterable[NotificationDraft]) -> tuple[Notification, ...]:
        with self._store.atomic():
            return tuple(self.add_notification(d) for d in drafts)

    def mark_notification_read(self, notification_id: str) -> Notification:
        notification = self.get_notification(notification_id)
        if notification.read:
            return notification
        return self._store.update(
            Collection.NOTIFICATIONS, dataclasses.replace(notification, read=True)
        )

    def get_notification(self, notification_id: str) -> Notification:
        return self._get(Collection.NOTIFICATIONS, notification_id)

    def list_notifications(self) -> tuple[Notification, ...]:
        return tuple(sorted(self._store.list(Collection.NOTIFICATIONS), key=_by_created))
