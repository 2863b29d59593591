"""
Plan calculator -- splits a total fee into deposit, platform fee and
installments.

Responsibility:
    ``compute_plan`` is the single source of the plan arithmetic used by the
    enrollment flow and by any quote shown before enrollment.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.

Numeric semantics:
    Decimal throughout.  Division results are not rounded here; rounding for
    display belongs to the presentation layer.  A total fee of zero produces
    an all-zero plan rather than an error.

Failure modes:
    - InvalidInputError when the total fee is negative, non-numeric or not
      finite, or when the cadence is not recognised.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from fee_ledger.domain.dtos import Cadence
from fee_ledger.domain.policy import DEFAULT_PLAN_POLICY, PlanPolicy
from fee_ledger.domain.validation import require_non_negative
from fee_ledger.exceptions import InvalidInputError


@dataclass(frozen=True)
class Plan:
    """A computed installment plan.  All amounts are unrounded Decimals."""

    total_fee: Decimal
    cadence: Cadence
    deposit_amount: Decimal
    platform_fee: Decimal
    remaining_balance: Decimal
    installment_amount: Decimal
    installment_count: int
    initial_activation_payment: Decimal
    grand_total: Decimal
    period_days: int

    def schedule(self, start: date) -> tuple[date, ...]:
        """Due dates of the installments that follow activation on ``start``."""
        step = timedelta(days=self.period_days)
        return tuple(start + step * n for n in range(1, self.installment_count + 1))


def parse_cadence(value: Cadence | str) -> Cadence:
    """Accept the enum or its name/value in any case."""
    if isinstance(value, Cadence):
        return value
    if isinstance(value, str):
        wanted = value.strip().lower()
        for cadence in Cadence:
            if wanted in (cadence.value.lower(), cadence.name.lower()):
                return cadence
    raise InvalidInputError("cadence", f"expected Weekly or Monthly, got {value!r}")


def compute_plan(
    total_fee: Any,
    cadence: Cadence | str,
    policy: PlanPolicy | None = None,
) -> Plan:
    """
    Compute the plan for ``total_fee`` paid at ``cadence``.

    With the default policy:
        deposit      = total * 0.25
        platform_fee = total * 0.025
        remaining    = total * 0.75
        count        = 12 (Weekly) or 3 (Monthly)
        installment  = remaining / count
        activation   = deposit + platform_fee
        grand_total  = total + platform_fee

    Raises:
        InvalidInputError: negative/non-numeric fee or unknown cadence.
    """
    policy = policy or DEFAULT_PLAN_POLICY
    total = require_non_negative(total_fee, "total_fee")
    cadence = parse_cadence(cadence)

    count = policy.installment_counts[cadence]
    deposit = total * policy.deposit_rate
    platform_fee = total * policy.platform_fee_rate
    remaining = total * (Decimal("1") - policy.deposit_rate)

    return Plan(
        total_fee=total,
        cadence=cadence,
        deposit_amount=deposit,
        platform_fee=platform_fee,
        remaining_balance=remaining,
        installment_amount=remaining / count,
        installment_count=count,
        initial_activation_payment=deposit + platform_fee,
        grand_total=total + platform_fee,
        period_days=policy.cadence_period_days[cadence],
    )
