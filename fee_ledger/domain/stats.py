"""
Read-side summaries for dashboards and reports.

Pure aggregations over already-scoped collections.  Callers scope first
(``domain.scoping``) and summarize second, so a bursar's summary only ever
covers their own school.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    School,
    Transaction,
    TransactionStatus,
)

ZERO = Decimal("0")


def payment_progress(dependent: Dependent) -> Decimal:
    """Fraction of the total fee paid, in [0, 1].  A zero-fee plan counts as paid."""
    if dependent.total_fee <= ZERO:
        return Decimal("1")
    return min(dependent.paid_amount / dependent.total_fee, Decimal("1"))


def classify_due_status(
    dependent: Dependent, today: date, window_days: int = 7
) -> DependentStatus:
    """
    Status derived from due-date proximity, for display.

    Never written back: the stored status only changes on completion.
    """
    if dependent.paid_amount >= dependent.total_fee:
        return DependentStatus.COMPLETED
    if dependent.next_due_date is None:
        return DependentStatus.ON_TRACK
    days_left = (dependent.next_due_date - today).days
    if days_left < 0:
        return DependentStatus.OVERDUE
    if days_left <= window_days:
        return DependentStatus.DUE_SOON
    return DependentStatus.ON_TRACK


def _revenue(transactions: Iterable[Transaction]) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.status is TransactionStatus.SUCCESSFUL),
        ZERO,
    )


def _outstanding(dependents: Iterable[Dependent]) -> Decimal:
    return sum((d.outstanding for d in dependents), ZERO)


@dataclass(frozen=True)
class InstitutionSummary:
    revenue: Decimal
    outstanding: Decimal
    registered_dependents: int
    pending_payments: int


def institution_summary(
    dependents: Iterable[Dependent],
    transactions: Iterable[Transaction],
) -> InstitutionSummary:
    dependents = tuple(dependents)
    transactions = tuple(transactions)
    return InstitutionSummary(
        revenue=_revenue(transactions),
        outstanding=_outstanding(dependents),
        registered_dependents=len(dependents),
        pending_payments=sum(1 for t in transactions if t.is_pending),
    )


@dataclass(frozen=True)
class SchoolStats:
    school: School
    revenue: Decimal
    outstanding: Decimal
    enrolled: int

    @property
    def total_students(self) -> int:
        return self.school.baseline_headcount + self.enrolled


@dataclass(frozen=True)
class PlatformOverview:
    revenue: Decimal
    outstanding: Decimal
    active_students: int
    pending_approvals: int
    schools: tuple[SchoolStats, ...]

    def search(self, query: str) -> tuple[SchoolStats, ...]:
        """Rows whose school name or address contains ``query`` (case-insensitive)."""
        if not query:
            return self.schools
        needle = query.lower()
        return tuple(
            row for row in self.schools
            if needle in row.school.name.lower() or needle in row.school.address.lower()
        )


def platform_overview(
    schools: Iterable[School],
    dependents: Iterable[Dependent],
    transactions: Iterable[Transaction],
) -> PlatformOverview:
    schools = tuple(schools)
    dependents = tuple(dependents)
    transactions = tuple(transactions)

    rows = []
    for school in schools:
        enrolled = [d for d in dependents if d.institution_id == school.id]
        paid_in = [t for t in transactions if t.institution_id == school.id]
        rows.append(
            SchoolStats(
                school=school,
                revenue=_revenue(paid_in),
                outstanding=_outstanding(enrolled),
                enrolled=len(enrolled),
            )
        )

    return PlatformOverview(
        revenue=_revenue(transactions),
        outstanding=_outstanding(dependents),
        active_students=sum(s.baseline_headcount for s in schools) + len(dependents),
        pending_approvals=sum(1 for t in transactions if t.is_pending),
        schools=tuple(rows),
    )


def transactions_in_month(
    transactions: Iterable[Transaction], year: int, month: int
) -> tuple[Transaction, ...]:
    """Payments created in the given calendar month, oldest first."""
    selected = [
        t for t in transactions
        if t.created_at.year == year and t.created_at.month == month
    ]
    return tuple(sorted(selected, key=lambda t: (t.created_at, t.id)))


@dataclass(frozen=True)
class DueDateEntry:
    due_date: date
    dependent: Dependent


def upcoming_due_dates(
    dependents: Iterable[Dependent], start: date, end: date
) -> tuple[DueDateEntry, ...]:
    """Calendar entries for unfinished plans due in ``[start, end]``."""
    entries = [
        DueDateEntry(d.next_due_date, d)
        for d in dependents
        if not d.is_completed
        and d.next_due_date is not None
        and start <= d.next_due_date <= end
    ]
    return tuple(sorted(entries, key=lambda e: (e.due_date, e.dependent.id)))
