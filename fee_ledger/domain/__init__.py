"""
Pure domain layer.

This package contains immutable records and domain logic with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (clocks are injected)
- I/O

All domain functions are deterministic over their inputs.
"""

from fee_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from fee_ledger.domain.dtos import (
    Cadence,
    Dependent,
    DependentStatus,
    LedgerSnapshot,
    Notification,
    NotificationCategory,
    NotificationDraft,
    Role,
    School,
    SettlementAccount,
    Severity,
    Transaction,
    TransactionStatus,
    User,
)
from fee_ledger.domain.identity import EffectiveIdentity, resolve_effective_identity
from fee_ledger.domain.ids import IdGenerator, SequentialIdGenerator, TimestampIdGenerator
from fee_ledger.domain.lifecycle import (
    TRANSACTION_TRANSITIONS,
    LifecycleEvent,
    LifecycleOutcome,
)
from fee_ledger.domain.notifications import broadcast_draft, emit_lifecycle_notifications
from fee_ledger.domain.plan import Plan, compute_plan
from fee_ledger.domain.policy import AlertPolicy, PlanPolicy
from fee_ledger.domain.scoping import (
    visible_dependents,
    visible_notifications,
    visible_transactions,
)

__all__ = [
    # Time and ids
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "IdGenerator",
    "SequentialIdGenerator",
    "TimestampIdGenerator",
    # Records
    "Cadence",
    "Dependent",
    "DependentStatus",
    "LedgerSnapshot",
    "Notification",
    "NotificationCategory",
    "NotificationDraft",
    "Role",
    "School",
    "SettlementAccount",
    "Severity",
    "Transaction",
    "TransactionStatus",
    "User",
    # Identity and scoping
    "EffectiveIdentity",
    "resolve_effective_identity",
    "visible_dependents",
    "visible_notifications",
    "visible_transactions",
    # Plans
    "Plan",
    "PlanPolicy",
    "AlertPolicy",
    "compute_plan",
    # Lifecycle
    "TRANSACTION_TRANSITIONS",
    "LifecycleEvent",
    "LifecycleOutcome",
    "emit_lifecycle_notifications",
    "broadcast_draft",
]
