"""
DTOs -- Pure domain records for the fee ledger.

Responsibility:
    Defines the immutable records that flow between the ledger store, the
    scoping engine, the lifecycle controller and the presentation layer:
    User, School, Dependent, Transaction, Notification, the drafts the
    notification fan-out emits, and the point-in-time LedgerSnapshot.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.  No imports from
    ``db/``, ``models/``, ``services/`` or ``selectors/``.  ORM models
    convert to and from these records at the persistence boundary.

Invariants enforced:
    - Records are frozen; every mutation goes through ``dataclasses.replace``
      inside ``LedgerStore``.
    - Money fields are ``Decimal``; timestamps are timezone-aware.

Failure modes:
    None here.  Field-level validation lives in ``domain.validation`` and is
    applied by ``LedgerStore`` before any write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


# =========================================================================
# Enumerations
# =========================================================================


class Role(str, Enum):
    """Closed set of account roles."""

    GUARDIAN = "guardian"
    ADMINISTRATOR = "administrator"
    INSTITUTION_BURSAR = "institution_bursar"
    STUDENT = "student"


class Cadence(str, Enum):
    """Installment frequency."""

    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class DependentStatus(str, Enum):
    ON_TRACK = "OnTrack"
    DUE_SOON = "DueSoon"
    OVERDUE = "Overdue"
    COMPLETED = "Completed"


class TransactionStatus(str, Enum):
    """Payment lifecycle states."""

    PENDING = "Pending"
    SUCCESSFUL = "Successful"
    FAILED = "Failed"


class NotificationCategory(str, Enum):
    PAYMENT = "payment"
    DUE_ALERT = "due-alert"
    ANNOUNCEMENT = "announcement"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# =========================================================================
# Records
# =========================================================================


@dataclass(frozen=True)
class SettlementAccount:
    """Bank details a bursar's institution is paid out to."""

    bank_name: str
    account_name: str
    account_number: str


@dataclass(frozen=True)
class User:
    """
    A platform account.

    ``institution_id`` is set iff ``role`` is INSTITUTION_BURSAR.
    ``bank_details`` is only ever populated for bursars.
    """

    id: str
    name: str
    email: str
    role: Role
    institution_id: str | None = None
    bank_details: SettlementAccount | None = None
    phone_number: str | None = None


@dataclass(frozen=True)
class School:
    """An institution.  ``baseline_headcount`` is used for reporting only."""

    id: str
    name: str
    address: str = ""
    contact_email: str = ""
    baseline_headcount: int = 0


@dataclass(frozen=True)
class Dependent:
    """
    An enrolled dependent and its fee plan.

    Linked to its school by ``institution_id``; ``institution_name`` is a
    denormalized copy kept in sync by ``LedgerStore.update_school``.

    Invariant: ``status is COMPLETED`` iff ``paid_amount >= total_fee``.
    """

    id: str
    owner_id: str
    name: str
    institution_id: str
    institution_name: str
    grade: str
    total_fee: Decimal
    paid_amount: Decimal = Decimal("0")
    next_installment_amount: Decimal = Decimal("0")
    next_due_date: date | None = None
    status: DependentStatus = DependentStatus.ON_TRACK
    cadence: Cadence = Cadence.MONTHLY

    @property
    def outstanding(self) -> Decimal:
        return max(self.total_fee - self.paid_amount, Decimal("0"))

    @property
    def is_completed(self) -> bool:
        return self.status is DependentStatus.COMPLETED


@dataclass(frozen=True)
class Transaction:
    """
    A single submitted payment.

    Created Pending; transitions exactly once to Successful or Failed.
    ``receipt_ref`` is stored verbatim and never inspected.
    """

    id: str
    dependent_id: str
    payer_user_id: str
    dependent_name: str
    institution_id: str
    institution_name: str
    amount: Decimal
    created_at: datetime
    status: TransactionStatus = TransactionStatus.PENDING
    receipt_ref: str | None = None
    resolved_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING


@dataclass(frozen=True)
class Notification:
    """A message for one user, or a broadcast when ``target_user_id`` is None."""

    id: str
    target_user_id: str | None
    category: NotificationCategory
    title: str
    message: str
    created_at: datetime
    severity: Severity = Severity.INFO
    read: bool = False

    @property
    def is_broadcast(self) -> bool:
        return self.target_user_id is None


@dataclass(frozen=True)
class NotificationDraft:
    """Notification content before the ledger assigns id and timestamp."""

    target_user_id: str | None
    category: NotificationCategory
    title: str
    message: str
    severity: Severity = Severity.INFO


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time copy of every collection, used by the read path."""

    users: tuple[User, ...] = ()
    schools: tuple[School, ...] = ()
    dependents: tuple[Dependent, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    notifications: tuple[Notification, ...] = ()
