"""
Tests for read-side summaries (fee_ledger.domain.stats).

Covers:
- payment_progress and classify_due_status
- institution_summary and platform_overview totals
- PlatformOverview.search
- transactions_in_month and upcoming_due_dates selection/ordering
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    School,
    Transaction,
    TransactionStatus,
)
from fee_ledger.domain.stats import (
    classify_due_status,
    institution_summary,
    payment_progress,
    platform_overview,
    transactions_in_month,
    upcoming_due_dates,
)

SCHOOL_A = School("sch-a", "Greenfield Academy", "12 Elm Road, Lagos", baseline_headcount=300)
SCHOOL_B = School("sch-b", "Riverside College", "4 Quay Street, Abuja", baseline_headcount=120)


def _dep(dep_id, school, total, paid, due=None):
    status = DependentStatus.COMPLETED if Decimal(paid) >= Decimal(total) else DependentStatus.ON_TRACK
    return Dependent(
        dep_id, "g1", dep_id, school.id, school.name, "G1",
        Decimal(total), Decimal(paid), Decimal("10"), due, status,
    )


def _tx(tx_id, school, amount, status, when):
    return Transaction(
        tx_id, "d", "g1", "d", school.id, school.name, Decimal(amount), when, status,
    )


DEPENDENTS = (
    _dep("d1", SCHOOL_A, "1000", "250", due=date(2024, 2, 10)),
    _dep("d2", SCHOOL_A, "500", "500"),
    _dep("d3", SCHOOL_B, "800", "0", due=date(2024, 1, 20)),
)
TRANSACTIONS = (
    _tx("t1", SCHOOL_A, "250", TransactionStatus.SUCCESSFUL, datetime(2024, 1, 5, tzinfo=timezone.utc)),
    _tx("t2", SCHOOL_A, "500", TransactionStatus.SUCCESSFUL, datetime(2024, 1, 2, tzinfo=timezone.utc)),
    _tx("t3", SCHOOL_B, "220", TransactionStatus.PENDING, datetime(2024, 2, 1, tzinfo=timezone.utc)),
    _tx("t4", SCHOOL_B, "99", TransactionStatus.FAILED, datetime(2024, 1, 9, tzinfo=timezone.utc)),
)


class TestProgressAndStatus:
    def test_progress(self):
        assert payment_progress(DEPENDENTS[0]) == Decimal("0.25")
        assert payment_progress(DEPENDENTS[1]) == 1

    def test_zero_fee_counts_as_paid(self):
        assert payment_progress(_dep("z", SCHOOL_A, "0", "0")) == 1

    @pytest.mark.parametrize(
        "today,expected",
        [
            (date(2024, 1, 1), DependentStatus.ON_TRACK),
            (date(2024, 2, 3), DependentStatus.DUE_SOON),
            (date(2024, 2, 10), DependentStatus.DUE_SOON),
            (date(2024, 2, 11), DependentStatus.OVERDUE),
        ],
    )
    def test_classify(self, today, expected):
        assert classify_due_status(DEPENDENTS[0], today) is expected

    def test_classify_completed_and_undated(self):
        assert classify_due_status(DEPENDENTS[1], date(2030, 1, 1)) is DependentStatus.COMPLETED
        undated = _dep("u", SCHOOL_A, "100", "0")
        assert classify_due_status(undated, date(2030, 1, 1)) is DependentStatus.ON_TRACK


class TestSummaries:
    def test_institution_summary(self):
        summary = institution_summary(DEPENDENTS[:2], TRANSACTIONS[:2])
        assert summary.revenue == Decimal("750")
        assert summary.outstanding == Decimal("750")
        assert summary.registered_dependents == 2
        assert summary.pending_payments == 0

    def test_platform_overview(self):
        overview = platform_overview((SCHOOL_A, SCHOOL_B), DEPENDENTS, TRANSACTIONS)
        assert overview.revenue == Decimal("750")
        assert overview.outstanding == Decimal("1550")
        assert overview.active_students == 300 + 120 + 3
        assert overview.pending_approvals == 1

        row_a, row_b = overview.schools
        assert row_a.enrolled == 2
        assert row_a.total_students == 302
        assert row_b.revenue == 0
        assert row_b.outstanding == Decimal("800")

    def test_search(self):
        overview = platform_overview((SCHOOL_A, SCHOOL_B), DEPENDENTS, TRANSACTIONS)
        assert [r.school.id for r in overview.search("river")] == ["sch-b"]
        assert [r.school.id for r in overview.search("LAGOS")] == ["sch-a"]
        assert len(overview.search("")) == 2


class TestSelections:
    def test_transactions_in_month(self):
        january = transactions_in_month(TRANSACTIONS, 2024, 1)
        assert [t.id for t in january] == ["t2", "t1", "t4"]
        assert [t.id for t in transactions_in_month(TRANSACTIONS, 2024, 2)] == ["t3"]

    def test_upcoming_due_dates(self):
        entries = upcoming_due_dates(DEPENDENTS, date(2024, 1, 1), date(2024, 2, 28))
        assert [(e.due_date, e.dependent.id) for e in entries] == [
            (date(2024, 1, 20), "d3"),
            (date(2024, 2, 10), "d1"),
        ]
        assert upcoming_due_dates(DEPENDENTS, date(2024, 1, 21), date(2024, 2, 9)) == ()
