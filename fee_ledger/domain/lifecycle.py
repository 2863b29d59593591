"""
Payment lifecycle rules (``fee_ledger.domain.lifecycle``).

Responsibility
--------------
The payment state machine and the pure balance arithmetic applied when a
payment is approved.  ``TransactionLifecycleController`` in the service
layer performs the I/O; everything it decides comes from here.

Architecture position
---------------------
**Ledger domain layer** -- pure functions over DTOs.  ZERO I/O.

State machine
-------------
::

    (none) --submit-->  Pending
    Pending --approve--> Successful
    Pending --decline--> Failed
    Successful, Failed: terminal

Invariants enforced
-------------------
* ``TRANSACTION_TRANSITIONS`` defines the only valid status transitions.
  Terminal states have no outgoing edges.
* ``paid_amount`` never exceeds ``total_fee``; the dependent is Completed
  exactly when it is fully paid.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    Transaction,
    TransactionStatus,
)
from fee_ledger.exceptions import TransactionAlreadyResolvedError

ZERO = Decimal("0")


class LifecycleEvent(str, Enum):
    """Commands that move a payment through its lifecycle."""

    SUBMIT = "submit"
    APPROVE = "approve"
    DECLINE = "decline"


TRANSACTION_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.SUCCESSFUL,
        TransactionStatus.FAILED,
    }),
    TransactionStatus.SUCCESSFUL: frozenset(),
    TransactionStatus.FAILED: frozenset(),
}

TERMINAL_TRANSACTION_STATUSES: frozenset[TransactionStatus] = frozenset({
    TransactionStatus.SUCCESSFUL,
    TransactionStatus.FAILED,
})

_EVENT_TARGET = {
    LifecycleEvent.APPROVE: TransactionStatus.SUCCESSFUL,
    LifecycleEvent.DECLINE: TransactionStatus.FAILED,
}


@dataclass(frozen=True)
class LifecycleOutcome:
    """Records written by one approve/decline command."""

    event: LifecycleEvent
    transaction: Transaction
    dependent_before: Dependent
    dependent_after: Dependent
    notifications: tuple = ()

    @property
    def credited(self) -> Decimal:
        return self.dependent_after.paid_amount - self.dependent_before.paid_amount


def resolve_transaction(
    transaction: Transaction,
    event: LifecycleEvent,
    resolved_at: datetime,
) -> Transaction:
    """
    Return ``transaction`` moved to the status ``event`` leads to.

    Raises:
        TransactionAlreadyResolvedError: the transition is not allowed from the
            current status (every non-Pending status is terminal).
    """
    target = _EVENT_TARGET[event]
    if target not in TRANSACTION_TRANSITIONS[transaction.status]:
        raise TransactionAlreadyResolvedError(
            transaction.id, transaction.status.value, event.value,
        )
    return dataclasses.replace(transaction, status=target, resolved_at=resolved_at)


def apply_approved_payment(
    dependent: Dependent,
    amount: Decimal,
    approved_at: datetime,
    next_due_period_days: int = 30,
) -> Dependent:
    """
    Credit an approved payment to ``dependent``.

    ``paid_amount`` becomes ``min(paid + amount, total)``.  A fully paid plan
    becomes Completed with no next installment or due date.  Otherwise the
    next due date moves ``next_due_period_days`` past the approval date and
    the scheduled installment amount and the status are left alone.
    """
    paid = min(dependent.paid_amount + amount, dependent.total_fee)
    if paid >= dependent.total_fee:
        return dataclasses.replace(
            dependent,
            paid_amount=paid,
            status=DependentStatus.COMPLETED,
            next_installment_amount=ZERO,
            next_due_date=None,
        )
    return dataclasses.replace(
        dependent,
        paid_amount=paid,
        next_due_date=approved_at.date() + timedelta(days=next_due_period_days),
    )


def is_activation(dependent_before: Dependent) -> bool:
    """The first credited payment on a plan activates it."""
    return dependent_before.paid_amount == ZERO
