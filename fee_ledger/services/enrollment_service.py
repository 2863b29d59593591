"""
EnrollmentService -- open and withdraw fee plans.

Enrolling computes the plan, creates the dependent and submits the
activation payment (deposit plus platform fee) as a Pending transaction.
The plan becomes active when that payment is approved.

Failure modes:
    - PermissionDeniedError: only guardians and students (or an
      administrator acting as one) enroll; only the owner or the
      platform-wide administrator withdraws.
    - SchoolNotFoundError / DependentNotFoundError for unknown ids.
    - InvalidInputError for a bad fee, cadence or name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fee_ledger.domain.clock import Clock
from fee_ledger.domain.dtos import Cadence, Dependent, Transaction
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.domain.plan import Plan, compute_plan
from fee_ledger.domain.policy import DEFAULT_PLAN_POLICY, PlanPolicy
from fee_ledger.domain.scoping import may_enroll, may_manage_dependent
from fee_ledger.exceptions import FeeLedgerError, PermissionDeniedError
from fee_ledger.logging_config import get_logger
from fee_ledger.services.base import BaseService
from fee_ledger.services.ledger_store import LedgerStore
from fee_ledger.services.lifecycle_service import TransactionLifecycleController

logger = get_logger("services.enrollment")


@dataclass(frozen=True)
class Enrollment:
    """Result of ``enroll``.  ``activation`` is None when nothing is due up front."""

    dependent: Dependent
    plan: Plan
    activation: Transaction | None


class EnrollmentService(BaseService):
    def __init__(
        self,
        ledger: LedgerStore,
        clock: Clock | None = None,
        plan_policy: PlanPolicy | None = None,
        lifecycle: TransactionLifecycleController | None = None,
    ):
        super().__init__(ledger, clock)
        self._policy = plan_policy or DEFAULT_PLAN_POLICY
        self._lifecycle = lifecycle or TransactionLifecycleController(
            ledger, self.clock, self._policy,
        )

    def quote(self, total_fee: Any, cadence: Cadence | str) -> Plan:
        """The plan ``enroll`` would create, without writing anything."""
        return compute_plan(total_fee, cadence, self._policy)

    def enroll(
        self,
        identity: EffectiveIdentity,
        dependent_name: str,
        school_id: str,
        grade: str,
        total_fee: Any,
        cadence: Cadence | str,
        receipt_ref: str | None = None,
    ) -> Enrollment:
        """
        Enroll a dependent for ``identity`` and submit the activation payment.

        The dependent is owned by the identity's scope key, starts OnTrack
        with nothing paid, and has ``next_installment_amount`` set to the
        plan's installment.  A zero-fee plan is created Completed and no
        activation payment is submitted.
        """
        with self._bind(identity):
            try:
                if not may_enroll(identity):
                    raise PermissionDeniedError(identity.role.value, "enroll a dependent")
                plan = compute_plan(total_fee, cadence, self._policy)
                with self.ledger.atomic():
                    dependent = self.ledger.add_dependent(
                        owner_id=identity.scope_key,
                        name=dependent_name,
                        institution_id=school_id,
                        grade=grade,
                        total_fee=plan.total_fee,
                        cadence=plan.cadence,
                        next_installment_amount=plan.installment_amount,
                    )
                    activation = None
                    if not dependent.is_completed and plan.initial_activation_payment > 0:
                        activation = self._lifecycle.submit_activation(
                            identity,
                            dependent,
                            plan.initial_activation_payment,
                            receipt_ref=receipt_ref,
                        )
            except FeeLedgerError as exc:
                logger.warning(
                    "enrollment_rejected",
                    extra={"school_id": school_id, "error_code": exc.code},
                )
                raise

            logger.info(
                "dependent_enrolled",
                extra={
                    "dependent_id": dependent.id,
                    "school_id": school_id,
                    "total_fee": str(plan.total_fee),
                    "cadence": plan.cadence.value,
                    "activation_transaction_id": activation.id if activation else None,
                },
            )
            return Enrollment(dependent=dependent, plan=plan, activation=activation)

    def withdraw(self, identity: EffectiveIdentity, dependent_id: str) -> None:
        """Delete a dependent and its payments."""
        with self._bind(identity, dependent_id=dependent_id):
            try:
                with self.ledger.dependent_lock(dependent_id):
                    dependent = self.ledger.get_dependent(dependent_id)
                    if not may_manage_dependent(identity, dependent):
                        raise PermissionDeniedError(identity.role.value, "withdraw this dependent")
                    self.ledger.delete_dependent(dependent_id)
            except FeeLedgerError as exc:
                logger.warning(
                    "withdrawal_rejected",
                    extra={"dependent_id": dependent_id, "error_code": exc.code},
                )
                raise
            logger.info("dependent_withdrawn", extra={"dependent_id": dependent_id})
