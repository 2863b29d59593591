"""
Hypothesis-based property tests for plan arithmetic and payment crediting.

Boundaries fuzzed here:
- Plan calculator: component identities for any non-negative fee and cadence
- Approval crediting: paid never exceeds total, completion iff fully paid,
  credited equals min(amount, outstanding)
- Random submit/approve/decline sequences against an in-memory ledger

Boundaries not fuzzed here (covered by explicit tests):
- Authorization and scoping (tests/domain/test_scoping_engine.py)
- Concurrent approvals (tests/services/test_lifecycle_controller.py)
"""

from datetime import datetime, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from fee_ledger.db.memory_store import InMemoryStore
from fee_ledger.domain.clock import DeterministicClock
from fee_ledger.domain.dtos import Cadence, Dependent, DependentStatus, Role
from fee_ledger.domain.identity import resolve_effective_identity
from fee_ledger.domain.ids import SequentialIdGenerator
from fee_ledger.domain.lifecycle import apply_approved_payment
from fee_ledger.domain.plan import compute_plan
from fee_ledger.services.ledger_store import LedgerStore
from fee_ledger.services.lifecycle_service import TransactionLifecycleController

APPROVED_AT = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

fees = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("10000000.00"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000000.00"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

cadences = st.sampled_from(list(Cadence))


def _dependent(total: Decimal, paid: Decimal) -> Dependent:
    return Dependent(
        id="dep-1",
        owner_id="guardian-1",
        name="Tobi",
        institution_id="school-1",
        institution_name="Greenfield Academy",
        grade="Grade 4",
        total_fee=total,
        paid_amount=paid,
        next_installment_amount=Decimal("0"),
        status=DependentStatus.COMPLETED if paid >= total else DependentStatus.ON_TRACK,
    )


class TestPlanProperties:
    @given(total=fees, cadence=cadences)
    @settings(max_examples=300, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_components_add_up(self, total, cadence):
        plan = compute_plan(total, cadence)

        assert plan.deposit_amount + plan.remaining_balance == total
        assert plan.initial_activation_payment == plan.deposit_amount + plan.platform_fee
        assert plan.grand_total == total + plan.platform_fee
        drift = abs(plan.installment_amount * plan.installment_count - plan.remaining_balance)
        assert drift <= Decimal("1e-15")
        assert plan.installment_amount >= 0

    @given(total=fees, cadence=cadences)
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_string_and_decimal_inputs_agree(self, total, cadence):
        assert compute_plan(str(total), cadence.value) == compute_plan(total, cadence)


class TestCreditingProperties:
    @given(
        total=fees,
        paid_fraction=st.decimals(min_value=0, max_value=1, places=2),
        amount=amounts,
    )
    @settings(max_examples=300, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_approval_invariants(self, total, paid_fraction, amount):
        paid = (total * paid_fraction).quantize(Decimal("0.01"))
        before = _dependent(total, min(paid, total))

        after = apply_approved_payment(before, amount, APPROVED_AT)

        assert after.paid_amount <= after.total_fee
        assert after.is_completed == (after.paid_amount >= after.total_fee)
        assert after.paid_amount - before.paid_amount == min(amount, before.outstanding)


class TestLedgerSequences:
    @given(
        total=st.integers(min_value=1, max_value=50000).map(Decimal),
        steps=st.lists(
            st.tuples(
                st.integers(min_value=1, max_value=20000).map(Decimal),
                st.booleans(),
            ),
            min_size=1,
            max_size=12,
        ),
    )
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture])
    def test_balance_matches_approved_payments(self, total, steps):
        ledger = LedgerStore(InMemoryStore(), DeterministicClock(), SequentialIdGenerator())
        school = ledger.add_school("Greenfield Academy")
        admin_user = ledger.add_user("Ada", "ada@x", Role.ADMINISTRATOR)
        guardian_user = ledger.add_user("Grace", "grace@x", Role.GUARDIAN)
        admin = resolve_effective_identity(admin_user)
        guardian = resolve_effective_identity(guardian_user)
        dependent = ledger.add_dependent(guardian_user.id, "Tobi", school.id, "G4", total)
        controller = TransactionLifecycleController(ledger)

        expected = Decimal("0")
        for amount, approve in steps:
            if ledger.get_dependent(dependent.id).is_completed:
                break
            tx = controller.submit(guardian, dependent.id, amount)
            if approve:
                controller.approve(admin, tx.id)
                expected = min(expected + amount, total)
            else:
                controller.decline(admin, tx.id)

        final = ledger.get_dependent(dependent.id)
        assert final.paid_amount == expected
        assert final.is_completed == (expected >= total)
        assert all(not t.is_pending for t in ledger.list_transactions())
