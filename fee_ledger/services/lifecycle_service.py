"""
TransactionLifecycleController -- submit, approve and decline payments.

Responsibility:
    Drives a payment through Pending -> Successful | Failed and applies the
    cascading effects of approval: the dependent's balance and status, and
    the notification fan-out.

Architecture position:
    Ledger > Services.  State-machine and balance rules come from
    ``domain.lifecycle``; notification content from
    ``domain.notifications``; authorization from ``domain.scoping``.

Invariants enforced:
    - Only a Pending payment can be approved or declined.  The status is
      re-read under the dependent's lock, so of two concurrent attempts on
      the same payment exactly one succeeds.
    - Approval writes (transaction status, dependent balance, notifications)
      happen in one ``ledger.atomic()`` block while the dependent's lock is
      held.  Two approvals of different payments on the same dependent
      therefore never lose an update.
    - Every check runs before the first write; a failed command leaves the
      ledger unchanged.

Failure modes:
    - DependentNotFoundError / TransactionNotFoundError for unknown ids.
    - InvalidInputError for a non-positive amount.
    - PermissionDeniedError when the identity may not submit or review.
    - PlanAlreadyCompletedError when paying into a fully paid plan.
    - TransactionAlreadyResolvedError when the payment is not Pending.

    Failures are logged at WARNING with their error code and re-raised.
"""

from __future__ import annotations

from typing import Any

from fee_ledger.domain.clock import Clock
from fee_ledger.domain.dtos import Dependent, Transaction
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.domain.lifecycle import (
    LifecycleEvent,
    LifecycleOutcome,
    apply_approved_payment,
    resolve_transaction,
)
from fee_ledger.domain.notifications import emit_lifecycle_notifications
from fee_ledger.domain.policy import DEFAULT_PLAN_POLICY, PlanPolicy
from fee_ledger.domain.scoping import (
    may_review_payments,
    may_submit_for,
    pending_for_review,
)
from fee_ledger.domain.validation import require_positive
from fee_ledger.exceptions import (
    FeeLedgerError,
    PermissionDeniedError,
    PlanAlreadyCompletedError,
)
from fee_ledger.logging_config import get_logger
from fee_ledger.services.base import BaseService
from fee_ledger.services.ledger_store import LedgerStore

logger = get_logger("services.lifecycle")

_RESOLVED_EVENT_NAMES = {
    LifecycleEvent.APPROVE: "payment_approved",
    LifecycleEvent.DECLINE: "payment_declined",
}


def _log_submitted(tx: Transaction) -> None:
    logger.info(
        "payment_submitted",
        extra={
            "transaction_id": tx.id,
            "amount": str(tx.amount),
            "payer_user_id": tx.payer_user_id,
        },
    )


class TransactionLifecycleController(BaseService):
    """
    Payment state machine over a ``LedgerStore``.

    Args:
        ledger: The ledger to read and write.
        clock: Time source for ``resolved_at`` and due dates.
        plan_policy: Supplies ``next_due_period_days``.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        clock: Clock | None = None,
        plan_policy: PlanPolicy | None = None,
    ):
        super().__init__(ledger, clock)
        self._policy = plan_policy or DEFAULT_PLAN_POLICY

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def submit(
        self,
        identity: EffectiveIdentity,
        dependent_id: str,
        amount: Any,
        receipt_ref: str | None = None,
    ) -> Transaction:
        """
        Record a Pending payment for ``dependent_id``.

        The payer is the dependent's owner, also when an administrator
        submits while acting as that owner.  ``paid_amount`` is unchanged
        until the payment is approved.
        """
        with self._bind(identity, dependent_id=dependent_id):
            try:
                with self.ledger.dependent_lock(dependent_id):
                    dependent = self.ledger.get_dependent(dependent_id)
                    tx = self._record_submission(identity, dependent, amount, receipt_ref)
            except FeeLedgerError as exc:
                logger.warning(
                    "payment_submit_rejected",
                    extra={"dependent_id": dependent_id, "error_code": exc.code},
                )
                raise

            _log_submitted(tx)
            return tx

    def submit_activation(
        self,
        identity: EffectiveIdentity,
        dependent: Dependent,
        amount: Any,
        receipt_ref: str | None = None,
    ) -> Transaction:
        """
        Submit the first payment for a dependent created in the caller's
        open unit of work.

        Takes no dependent lock, so it is safe to call inside
        ``ledger.atomic()``.  Checks and logging are the same as ``submit``.
        """
        with self._bind(identity, dependent_id=dependent.id):
            tx = self._record_submission(identity, dependent, amount, receipt_ref)
            _log_submitted(tx)
            return tx

    def _record_submission(
        self,
        identity: EffectiveIdentity,
        dependent: Dependent,
        amount: Any,
        receipt_ref: str | None,
    ) -> Transaction:
        amount = require_positive(amount, "amount")
        if not may_submit_for(identity, dependent):
            raise PermissionDeniedError(
                identity.role.value, "submit a payment for this dependent",
            )
        if dependent.is_completed:
            raise PlanAlreadyCompletedError(dependent.id)
        return self.ledger.add_transaction(
            dependent.id, amount, receipt_ref=receipt_ref,
        )

    # ------------------------------------------------------------------
    # Approve / decline
    # ------------------------------------------------------------------

    def approve(self, identity: EffectiveIdentity, transaction_id: str) -> LifecycleOutcome:
        """
        Mark a Pending payment Successful and credit it to the dependent.

        ``paid_amount`` becomes ``min(paid + amount, total)``.  A fully paid
        plan becomes Completed; otherwise the next due date moves forward.
        The payer and the school's bursars are notified.
        """
        return self._resolve(identity, transaction_id, LifecycleEvent.APPROVE)

    def decline(self, identity: EffectiveIdentity, transaction_id: str) -> LifecycleOutcome:
        """Mark a Pending payment Failed.  Only the payer is notified."""
        return self._resolve(identity, transaction_id, LifecycleEvent.DECLINE)

    def _resolve(
        self,
        identity: EffectiveIdentity,
        transaction_id: str,
        event: LifecycleEvent,
    ) -> LifecycleOutcome:
        with self._bind(identity, transaction_id=transaction_id):
            try:
                if not may_review_payments(identity):
                    raise PermissionDeniedError(identity.role.value, f"{event.value} payments")
                dependent_id = self.ledger.get_transaction(transaction_id).dependent_id
                with self.ledger.dependent_lock(dependent_id):
                    outcome = self._resolve_locked(transaction_id, event)
            except FeeLedgerError as exc:
                logger.warning(
                    f"payment_{event.value}_rejected",
                    extra={"transaction_id": transaction_id, "error_code": exc.code},
                )
                raise

            logger.info(
                _RESOLVED_EVENT_NAMES[event],
                extra={
                    "dependent_id": outcome.dependent_after.id,
                    "amount": str(outcome.transaction.amount),
                    "credited": str(outcome.credited),
                    "paid_amount": str(outcome.dependent_after.paid_amount),
                    "dependent_status": outcome.dependent_after.status.value,
                    "notifications": len(outcome.notifications),
                },
            )
            return outcome

    def _resolve_locked(self, transaction_id: str, event: LifecycleEvent) -> LifecycleOutcome:
        with self.ledger.atomic():
            tx = self.ledger.get_transaction(transaction_id)
            before = self.ledger.get_dependent(tx.dependent_id)
            now = self.clock.now_utc()
            resolved = resolve_transaction(tx, event, now)

            if event is LifecycleEvent.APPROVE:
                after = apply_approved_payment(
                    before, tx.amount, now, self._policy.next_due_period_days,
                )
                bursars = self.ledger.find_bursars(before.institution_id)
            else:
                after = before
                bursars = ()
            drafts = emit_lifecycle_notifications(event, resolved, before, after, bursars)

            self.ledger.update_transaction(
                resolved.id, status=resolved.status, resolved_at=resolved.resolved_at,
            )
            if after != before:
                after = self.ledger.update_dependent(
                    after.id,
                    paid_amount=after.paid_amount,
                    status=after.status,
                    next_installment_amount=after.next_installment_amount,
                    next_due_date=after.next_due_date,
                )
            notifications = self.ledger.add_notifications(drafts)

        return LifecycleOutcome(
            event=event,
            transaction=resolved,
            dependent_before=before,
            dependent_after=after,
            notifications=notifications,
        )

    # ------------------------------------------------------------------
    # Review queue
    # ------------------------------------------------------------------

    def pending_queue(self, identity: EffectiveIdentity) -> tuple[Transaction, ...]:
        """Pending payments awaiting review, oldest first.  Empty for non-reviewers."""
        return pending_for_review(identity, self.ledger.list_transactions())
