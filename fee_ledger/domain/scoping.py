"""
Scoping engine -- what an effective identity is allowed to see and do.

Responsibility:
    Pure projections from (identity, full collection) to the visible subset,
    plus the authorization predicates command services consult before
    writing.  This module is the only place that branches on ``Role``;
    services depend on ``EffectiveIdentity`` and these predicates.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.  Inputs are usually
    the tuples of a ``LedgerSnapshot``.

Visibility rules:
    ============================  ==========================================
    Identity                      Visible records
    ============================  ==========================================
    platform-wide administrator   everything
    guardian / student            dependents they own, payments they made
    institution bursar            dependents and payments of their school
    ============================  ==========================================

    A bursar whose institution no longer resolves to a school sees nothing.
    Notifications are visible when targeted at the scope key, broadcast, or
    when the identity is platform-wide.

Guarantees:
    For every guardian identity G:
        visible_dependents(G, ds) is a subset of visible_dependents(ADMIN, ds).
"""

from __future__ import annotations

from typing import Iterable

from fee_ledger.domain.dtos import (
    Dependent,
    Notification,
    Role,
    School,
    Transaction,
    TransactionStatus,
    User,
)
from fee_ledger.domain.identity import EffectiveIdentity

_ACCOUNT_HOLDER_ROLES = frozenset({Role.GUARDIAN, Role.STUDENT})


# =========================================================================
# Identity predicates
# =========================================================================


def is_platform_wide(identity: EffectiveIdentity) -> bool:
    """True for an administrator who is not impersonating anyone."""
    return identity.role is Role.ADMINISTRATOR and identity.scope_key is None


def is_account_holder(identity: EffectiveIdentity) -> bool:
    """Guardians and students hold plans in their own name."""
    return identity.role in _ACCOUNT_HOLDER_ROLES


def _resolved_institution(
    identity: EffectiveIdentity, schools: Iterable[School]
) -> str | None:
    if identity.role is not Role.INSTITUTION_BURSAR or not identity.institution_id:
        return None
    known = {s.id for s in schools}
    return identity.institution_id if identity.institution_id in known else None


# =========================================================================
# Projections
# =========================================================================


def visible_dependents(
    identity: EffectiveIdentity,
    dependents: Iterable[Dependent],
    schools: Iterable[School] = (),
) -> tuple[Dependent, ...]:
    if is_platform_wide(identity):
        return tuple(dependents)
    if is_account_holder(identity):
        return tuple(d for d in dependents if d.owner_id == identity.scope_key)
    institution_id = _resolved_institution(identity, schools)
    if institution_id is None:
        return ()
    return tuple(d for d in dependents if d.institution_id == institution_id)


def visible_transactions(
    identity: EffectiveIdentity,
    transactions: Iterable[Transaction],
    schools: Iterable[School] = (),
) -> tuple[Transaction, ...]:
    if is_platform_wide(identity):
        return tuple(transactions)
    if is_account_holder(identity):
        return tuple(t for t in transactions if t.payer_user_id == identity.scope_key)
    institution_id = _resolved_institution(identity, schools)
    if institution_id is None:
        return ()
    return tuple(t for t in transactions if t.institution_id == institution_id)


def visible_notifications(
    identity: EffectiveIdentity,
    notifications: Iterable[Notification],
) -> tuple[Notification, ...]:
    if is_platform_wide(identity):
        return tuple(notifications)
    return tuple(
        n for n in notifications
        if n.target_user_id is None or n.target_user_id == identity.scope_key
    )


def pending_for_review(
    identity: EffectiveIdentity,
    transactions: Iterable[Transaction],
) -> tuple[Transaction, ...]:
    """Pending payments awaiting review, oldest first.  Empty for non-reviewers."""
    if not may_review_payments(identity):
        return ()
    pending = [t for t in transactions if t.status is TransactionStatus.PENDING]
    return tuple(sorted(pending, key=lambda t: (t.created_at, t.id)))


# =========================================================================
# Authorization predicates
# =========================================================================


def may_review_payments(identity: EffectiveIdentity) -> bool:
    """Only the platform-wide administrator approves or declines payments."""
    return is_platform_wide(identity)


def may_manage_directory(identity: EffectiveIdentity) -> bool:
    """Schools and other users' accounts are administered platform-wide only."""
    return is_platform_wide(identity)


def may_broadcast(identity: EffectiveIdentity) -> bool:
    return is_platform_wide(identity)


def may_enroll(identity: EffectiveIdentity) -> bool:
    """Plans are opened by account holders, or by an admin acting as one."""
    return is_account_holder(identity)


def may_manage_dependent(identity: EffectiveIdentity, dependent: Dependent) -> bool:
    if is_platform_wide(identity):
        return True
    return is_account_holder(identity) and dependent.owner_id == identity.scope_key


def may_submit_for(identity: EffectiveIdentity, dependent: Dependent) -> bool:
    """Owners (own or impersonated) and the platform itself may submit payments."""
    return may_manage_dependent(identity, dependent)


def may_edit_user(identity: EffectiveIdentity, user: User) -> bool:
    return is_platform_wide(identity) or identity.scope_key == user.id


def may_read_notification(identity: EffectiveIdentity, notification: Notification) -> bool:
    return bool(visible_notifications(identity, (notification,)))
