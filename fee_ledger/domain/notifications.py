"""
Notification fan-out: which notifications a lifecycle event produces, and for
whom.

Pure functions returning ``NotificationDraft`` records.  Drafts carry no id
or timestamp; ``LedgerStore.add_notification`` assigns both when the
service layer persists them.

    approve -> payer (success)  + each bursar of the dependent's school (info)
    decline -> payer (error) only

A school with no bursar is not an error; it simply receives nothing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    NotificationCategory,
    NotificationDraft,
    Severity,
    Transaction,
    User,
)
from fee_ledger.domain.lifecycle import LifecycleEvent, is_activation


def format_amount(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def _payer_approval_draft(
    transaction: Transaction,
    dependent_before: Dependent,
    dependent_after: Dependent,
) -> NotificationDraft:
    amount = format_amount(transaction.amount)
    who = f"{transaction.dependent_name} at {transaction.institution_name}"
    if is_activation(dependent_before):
        title = "Plan Activated"
        message = f"Your activation payment of {amount} for {who} has been verified."
    elif dependent_after.status is DependentStatus.COMPLETED:
        title = "Plan Completed"
        message = f"Your final payment of {amount} for {who} has been verified. The plan is fully paid."
    else:
        title = "Payment Successful"
        message = f"Your installment of {amount} for {who} has been verified."
    if dependent_after.status is DependentStatus.COMPLETED and is_activation(dependent_before):
        message += " The plan is fully paid."
    return NotificationDraft(
        target_user_id=transaction.payer_user_id,
        category=NotificationCategory.PAYMENT,
        title=title,
        message=message,
        severity=Severity.SUCCESS,
    )


def _bursar_draft(transaction: Transaction, bursar: User) -> NotificationDraft:
    return NotificationDraft(
        target_user_id=bursar.id,
        category=NotificationCategory.PAYMENT,
        title="Payment Received",
        message=(
            f"A payment of {format_amount(transaction.amount)} for "
            f"{transaction.dependent_name} has been verified."
        ),
        severity=Severity.INFO,
    )


def emit_lifecycle_notifications(
    event: LifecycleEvent,
    transaction: Transaction,
    dependent_before: Dependent,
    dependent_after: Dependent | None = None,
    bursars: Iterable[User] = (),
) -> tuple[NotificationDraft, ...]:
    """
    Drafts for a resolved payment.

    Args:
        event: APPROVE or DECLINE.  SUBMIT produces nothing.
        transaction: The payment after resolution.
        dependent_before: The dependent as it was before the event; decides
            the activation framing.
        dependent_after: The dependent after crediting (defaults to before).
        bursars: Bursar accounts of the dependent's institution.
    """
    dependent_after = dependent_after or dependent_before

    if event is LifecycleEvent.APPROVE:
        drafts = [_payer_approval_draft(transaction, dependent_before, dependent_after)]
        drafts.extend(
            _bursar_draft(transaction, b)
            for b in bursars
            if b.institution_id == dependent_before.institution_id
        )
        return tuple(drafts)

    if event is LifecycleEvent.DECLINE:
        return (
            NotificationDraft(
                target_user_id=transaction.payer_user_id,
                category=NotificationCategory.PAYMENT,
                title="Payment Declined",
                message=(
                    f"Your payment of {format_amount(transaction.amount)} for "
                    f"{transaction.dependent_name} could not be verified."
                ),
                severity=Severity.ERROR,
            ),
        )

    return ()


def broadcast_draft(title: str, message: str) -> NotificationDraft:
    """An announcement with no target: every guardian and administrator sees it."""
    return NotificationDraft(
        target_user_id=None,
        category=NotificationCategory.ANNOUNCEMENT,
        title=title,
        message=message,
        severity=Severity.INFO,
    )


def due_alert_drafts(
    dependents: Iterable[Dependent],
    today: date,
    window_days: int,
) -> tuple[NotificationDraft, ...]:
    """Warnings to owners whose next installment is overdue or due within the window."""
    drafts = []
    for d in dependents:
        if d.is_completed or d.next_due_date is None:
            continue
        days_left = (d.next_due_date - today).days
        if days_left > window_days:
            continue
        amount = format_amount(d.next_installment_amount)
        if days_left < 0:
            title = "Payment Overdue"
            message = f"The installment of {amount} for {d.name} was due on {d.next_due_date.isoformat()}."
        else:
            title = "Upcoming Payment Due"
            message = f"The installment of {amount} for {d.name} is due on {d.next_due_date.isoformat()}."
        drafts.append(
            NotificationDraft(
                target_user_id=d.owner_id,
                category=NotificationCategory.DUE_ALERT,
                title=title,
                message=message,
                severity=Severity.WARNING,
            )
        )
    return tuple(drafts)
