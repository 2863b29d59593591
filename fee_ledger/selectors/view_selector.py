"""
ScopedViewSelector -- what one effective identity sees.

Each call takes a fresh ``LedgerSnapshot`` and projects it through
``domain.scoping``, so a view never mixes records from before and after a
concurrent write.  Summaries (``domain.stats``) are computed over the
already-scoped records.
"""

from __future__ import annotations

from datetime import date

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    LedgerSnapshot,
    Notification,
    Transaction,
)
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.domain.policy import DEFAULT_ALERT_POLICY, AlertPolicy
from fee_ledger.domain.scoping import (
    is_platform_wide,
    pending_for_review,
    visible_dependents,
    visible_notifications,
    visible_transactions,
)
from fee_ledger.domain.stats import (
    DueDateEntry,
    InstitutionSummary,
    PlatformOverview,
    classify_due_status,
    institution_summary,
    platform_overview,
    transactions_in_month,
    upcoming_due_dates,
)
from fee_ledger.exceptions import PermissionDeniedError
from fee_ledger.selectors.base import BaseSelector
from fee_ledger.services.ledger_store import LedgerStore


class ScopedViewSelector(BaseSelector):
    def __init__(self, ledger: LedgerStore, alert_policy: AlertPolicy | None = None):
        super().__init__(ledger)
        self._alerts = alert_policy or DEFAULT_ALERT_POLICY

    def _scoped(
        self, identity: EffectiveIdentity
    ) -> tuple[LedgerSnapshot, tuple[Dependent, ...], tuple[Transaction, ...]]:
        snapshot = self.ledger.snapshot()
        return (
            snapshot,
            visible_dependents(identity, snapshot.dependents, snapshot.schools),
            visible_transactions(identity, snapshot.transactions, snapshot.schools),
        )

    def dependents(self, identity: EffectiveIdentity) -> tuple[Dependent, ...]:
        return self._scoped(identity)[1]

    def transactions(self, identity: EffectiveIdentity) -> tuple[Transaction, ...]:
        """Visible payments, newest first."""
        txs = self._scoped(identity)[2]
        return tuple(sorted(txs, key=lambda t: (t.created_at, t.id), reverse=True))

    def notifications(
        self, identity: EffectiveIdentity, unread_only: bool = False
    ) -> tuple[Notification, ...]:
        """Visible notifications, newest first."""
        visible = visible_notifications(identity, self.ledger.list_notifications())
        if unread_only:
            visible = tuple(n for n in visible if not n.read)
        return tuple(sorted(visible, key=lambda n: (n.created_at, n.id), reverse=True))

    def pending_approvals(self, identity: EffectiveIdentity) -> tuple[Transaction, ...]:
        return pending_for_review(identity, self.ledger.list_transactions())

    def due_statuses(
        self, identity: EffectiveIdentity, today: date | None = None
    ) -> dict[str, DependentStatus]:
        """Display status per visible dependent id, derived from its due date."""
        today = today or self.ledger.clock.now_utc().date()
        return {
            d.id: classify_due_status(d, today, self._alerts.due_soon_window_days)
            for d in self.dependents(identity)
        }

    def institution_summary(self, identity: EffectiveIdentity) -> InstitutionSummary:
        _, dependents, transactions = self._scoped(identity)
        return institution_summary(dependents, transactions)

    def platform_overview(self, identity: EffectiveIdentity) -> PlatformOverview:
        """Per-school totals.  Platform-wide administrators only."""
        if not is_platform_wide(identity):
            raise PermissionDeniedError(identity.role.value, "view the platform overview")
        snapshot = self.ledger.snapshot()
        return platform_overview(snapshot.schools, snapshot.dependents, snapshot.transactions)

    def monthly_report(
        self, identity: EffectiveIdentity, year: int, month: int
    ) -> tuple[Transaction, ...]:
        return transactions_in_month(self._scoped(identity)[2], year, month)

    def due_calendar(
        self, identity: EffectiveIdentity, start: date, end: date
    ) -> tuple[DueDateEntry, ...]:
        return upcoming_due_dates(self._scoped(identity)[1], start, end)
