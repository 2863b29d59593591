"""
Tests for TransactionLifecycleController.

Covers:
- Submit: Pending record, balance untouched, payer attribution, rejections
- Approve: crediting, activation / installment / completion framing,
  bursar fan-out, overpayment capping, due-date roll forward
- Decline: Failed status, single error notification, balance untouched
- Terminal states: second approve/decline fails and changes nothing
- Authorization: only the platform-wide administrator reviews
- Structured log events
- Concurrency: one winner per payment, no lost updates per dependent
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from fee_ledger.domain.dtos import (
    DependentStatus,
    NotificationCategory,
    Severity,
    TransactionStatus,
)
from fee_ledger.domain.lifecycle import LifecycleEvent
from fee_ledger.exceptions import (
    DependentNotFoundError,
    InvalidInputError,
    PermissionDeniedError,
    PlanAlreadyCompletedError,
    TransactionAlreadyResolvedError,
    TransactionNotFoundError,
)
from fee_ledger.services.lifecycle_service import TransactionLifecycleController


@pytest.fixture
def dependent(world):
    """6000 Weekly plan owned by the guardian at Greenfield Academy."""
    return world.add_dependent()


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


class TestSubmit:
    def test_submit_records_pending_payment(self, world, lifecycle, dependent):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, "1650", "receipts/1.png")

        assert tx.status is TransactionStatus.PENDING
        assert tx.amount == Decimal("1650")
        assert tx.payer_user_id == world.guardian.id
        assert tx.receipt_ref == "receipts/1.png"
        assert world.ledger.get_dependent(dependent.id).paid_amount == 0

    def test_admin_acting_as_owner_submits_on_their_behalf(self, world, lifecycle, dependent):
        identity = world.identity(world.admin, world.guardian)
        tx = lifecycle.submit(identity, dependent.id, 100)
        assert tx.payer_user_id == world.guardian.id

    def test_platform_admin_submission_is_attributed_to_owner(self, world, lifecycle, dependent):
        tx = lifecycle.submit(world.admin_identity, dependent.id, 100)
        assert tx.payer_user_id == world.guardian.id

    @pytest.mark.parametrize("amount", [0, -10, "abc"])
    def test_non_positive_amount_rejected(self, world, lifecycle, dependent, amount):
        with pytest.raises(InvalidInputError):
            lifecycle.submit(world.guardian_identity, dependent.id, amount)
        assert world.ledger.list_transactions() == ()

    def test_other_guardian_cannot_submit(self, world, lifecycle, dependent):
        with pytest.raises(PermissionDeniedError):
            lifecycle.submit(world.identity(world.other_guardian), dependent.id, 100)
        assert world.ledger.list_transactions() == ()

    def test_bursar_cannot_submit(self, world, lifecycle, dependent):
        with pytest.raises(PermissionDeniedError):
            lifecycle.submit(world.bursar_identity, dependent.id, 100)

    def test_completed_plan_refuses_payments(self, world, lifecycle):
        paid_up = world.add_dependent(total_fee=500, paid_amount=500)
        with pytest.raises(PlanAlreadyCompletedError) as exc_info:
            lifecycle.submit(world.guardian_identity, paid_up.id, 100)
        assert exc_info.value.entity_id == paid_up.id

    def test_unknown_dependent(self, world, lifecycle):
        with pytest.raises(DependentNotFoundError):
            lifecycle.submit(world.guardian_identity, "missing", 100)


# ---------------------------------------------------------------------------
# Approve
# ---------------------------------------------------------------------------


class TestApprove:
    def test_activation_approval(self, world, lifecycle, dependent):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, "1650")
        outcome = lifecycle.approve(world.admin_identity, tx.id)

        stored_tx = world.ledger.get_transaction(tx.id)
        assert stored_tx.status is TransactionStatus.SUCCESSFUL
        assert stored_tx.resolved_at is not None

        after = world.ledger.get_dependent(dependent.id)
        assert after.paid_amount == Decimal("1650")
        assert after.status is DependentStatus.ON_TRACK
        assert after.next_due_date == date(2024, 1, 31)
        assert after.next_installment_amount == Decimal("375")
        assert outcome.credited == Decimal("1650")
        assert outcome.dependent_after == after

        notes = world.ledger.list_notifications()
        by_target = {n.target_user_id: n for n in notes}
        assert len(notes) == 2
        assert by_target[world.guardian.id].title == "Plan Activated"
        assert by_target[world.guardian.id].severity is Severity.SUCCESS
        assert by_target[world.bursar.id].category is NotificationCategory.PAYMENT
        assert by_target[world.bursar.id].severity is Severity.INFO

    def test_installment_then_completion(self, world, lifecycle, dependent):
        first = lifecycle.submit(world.guardian_identity, dependent.id, "1650")
        lifecycle.approve(world.admin_identity, first.id)
        second = lifecycle.submit(world.guardian_identity, dependent.id, "375")
        outcome = lifecycle.approve(world.admin_identity, second.id)
        assert outcome.notifications[0].title == "Payment Successful"

        final = lifecycle.submit(world.guardian_identity, dependent.id, "3975")
        outcome = lifecycle.approve(world.admin_identity, final.id)
        after = world.ledger.get_dependent(dependent.id)
        assert after.paid_amount == Decimal("6000")
        assert after.status is DependentStatus.COMPLETED
        assert after.next_due_date is None
        assert after.next_installment_amount == 0
        assert outcome.notifications[0].title == "Plan Completed"

    def test_overpayment_is_capped(self, world, lifecycle):
        small = world.add_dependent(total_fee=1000, paid_amount=900)
        tx = lifecycle.submit(world.guardian_identity, small.id, 500)
        outcome = lifecycle.approve(world.admin_identity, tx.id)

        assert outcome.credited == Decimal("100")
        assert outcome.transaction.amount == Decimal("500")
        assert world.ledger.get_dependent(small.id).paid_amount == Decimal("1000")

    def test_pending_payment_after_completion_can_still_be_approved(self, world, lifecycle):
        small = world.add_dependent(total_fee=1000, paid_amount=500)
        a = lifecycle.submit(world.guardian_identity, small.id, 500)
        b = lifecycle.submit(world.guardian_identity, small.id, 500)
        lifecycle.approve(world.admin_identity, a.id)
        outcome = lifecycle.approve(world.admin_identity, b.id)

        assert outcome.credited == 0
        assert world.ledger.get_dependent(small.id).paid_amount == Decimal("1000")

    def test_school_without_bursar_notifies_payer_only(self, world, lifecycle):
        elsewhere = world.add_dependent(school=world.other_school)
        tx = lifecycle.submit(world.guardian_identity, elsewhere.id, 100)
        outcome = lifecycle.approve(world.admin_identity, tx.id)
        assert [n.target_user_id for n in outcome.notifications] == [world.guardian.id]

    def test_every_bursar_of_the_school_is_notified(self, world, lifecycle, dependent):
        second = world.ledger.add_user(
            "Ben Obi", "ben@greenfield.example", "institution_bursar",
            institution_id=world.school.id,
        )
        tx = lifecycle.submit(world.guardian_identity, dependent.id, 100)
        outcome = lifecycle.approve(world.admin_identity, tx.id)
        targets = {n.target_user_id for n in outcome.notifications}
        assert targets == {world.guardian.id, world.bursar.id, second.id}


# ---------------------------------------------------------------------------
# Decline
# ---------------------------------------------------------------------------


class TestDecline:
    def test_decline(self, world, lifecycle, dependent):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, "1650")
        outcome = lifecycle.decline(world.admin_identity, tx.id)

        assert world.ledger.get_transaction(tx.id).status is TransactionStatus.FAILED
        assert world.ledger.get_dependent(dependent.id) == dependent
        assert outcome.credited == 0

        notes = world.ledger.list_notifications()
        assert len(notes) == 1
        assert notes[0].target_user_id == world.guardian.id
        assert notes[0].severity is Severity.ERROR


# ---------------------------------------------------------------------------
# Terminal states and authorization
# ---------------------------------------------------------------------------


class TestTerminalStates:
    @pytest.mark.parametrize("first", [LifecycleEvent.APPROVE, LifecycleEvent.DECLINE])
    @pytest.mark.parametrize("second", [LifecycleEvent.APPROVE, LifecycleEvent.DECLINE])
    def test_resolved_payment_cannot_change(self, world, lifecycle, dependent, first, second):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, "1650")
        getattr(lifecycle, first.value)(world.admin_identity, tx.id)
        before = world.ledger.snapshot()

        with pytest.raises(TransactionAlreadyResolvedError) as exc_info:
            getattr(lifecycle, second.value)(world.admin_identity, tx.id)

        assert exc_info.value.attempted == second.value
        assert world.ledger.snapshot() == before

    def test_unknown_transaction(self, world, lifecycle):
        with pytest.raises(TransactionNotFoundError):
            lifecycle.approve(world.admin_identity, "missing")


class TestReviewPermissions:
    @pytest.mark.parametrize("who", ["guardian", "bursar", "student"])
    def test_non_admins_cannot_review(self, world, lifecycle, dependent, who):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, 100)
        identity = world.identity(getattr(world, who))
        with pytest.raises(PermissionDeniedError):
            lifecycle.approve(identity, tx.id)
        with pytest.raises(PermissionDeniedError):
            lifecycle.decline(identity, tx.id)
        assert world.ledger.get_transaction(tx.id).is_pending

    def test_impersonating_admin_cannot_review(self, world, lifecycle, dependent):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, 100)
        with pytest.raises(PermissionDeniedError):
            lifecycle.approve(world.identity(world.admin, world.guardian), tx.id)

    def test_pending_queue(self, world, lifecycle, dependent, deterministic_clock):
        first = lifecycle.submit(world.guardian_identity, dependent.id, 100)
        deterministic_clock.advance(60)
        second = lifecycle.submit(world.guardian_identity, dependent.id, 200)
        deterministic_clock.advance(60)
        resolved = lifecycle.submit(world.guardian_identity, dependent.id, 300)
        lifecycle.decline(world.admin_identity, resolved.id)

        queue = lifecycle.pending_queue(world.admin_identity)
        assert [t.id for t in queue] == [first.id, second.id]
        assert lifecycle.pending_queue(world.guardian_identity) == ()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLifecycleLogging:
    def test_approval_events(self, world, lifecycle, dependent, captured_logs):
        tx = lifecycle.submit(world.identity(world.admin, world.guardian), dependent.id, "1650")
        lifecycle.approve(world.admin_identity, tx.id)

        records = {r["message"]: r for r in captured_logs()}
        submitted = records["payment_submitted"]
        assert submitted["actor_id"] == world.admin.id
        assert submitted["acting_as_id"] == world.guardian.id
        assert submitted["amount"] == "1650"

        approved = records["payment_approved"]
        assert approved["transaction_id"] == tx.id
        assert approved["credited"] == "1650"
        assert approved["dependent_status"] == "OnTrack"
        assert approved["notifications"] == 2
        assert "acting_as_id" not in approved

    def test_rejection_is_logged_with_code(self, world, lifecycle, dependent, captured_logs):
        tx = lifecycle.submit(world.guardian_identity, dependent.id, 100)
        with pytest.raises(PermissionDeniedError):
            lifecycle.approve(world.guardian_identity, tx.id)

        rejected = [r for r in captured_logs() if r["message"] == "payment_approve_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["error_code"] == "PERMISSION_DENIED"


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("store", ["memory"], indirect=True)
class TestConcurrentResolution:
    def test_one_winner_per_payment(self, world, dependent):
        controller = TransactionLifecycleController(world.ledger)
        tx = controller.submit(world.guardian_identity, dependent.id, "1650")

        def attempt(_):
            try:
                controller.approve(world.admin_identity, tx.id)
                return True
            except TransactionAlreadyResolvedError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(16)))

        assert results.count(True) == 1
        assert world.ledger.get_dependent(dependent.id).paid_amount == Decimal("1650")
        assert len(world.ledger.list_notifications()) == 2

    def test_no_lost_updates_on_one_dependent(self, world, dependent):
        controller = TransactionLifecycleController(world.ledger)
        txs = [
            controller.submit(world.guardian_identity, dependent.id, 100)
            for _ in range(20)
        ]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda t: controller.approve(world.admin_identity, t.id), txs))

        assert world.ledger.get_dependent(dependent.id).paid_amount == Decimal("2000")
        assert all(
            t.status is TransactionStatus.SUCCESSFUL
            for t in world.ledger.list_transactions()
        )
