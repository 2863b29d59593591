"""
Policy value objects that parameterize plan and alert calculations.

Architecture position:
    Ledger > Domain.  The ledger never reads configuration files itself;
    ``fee_config`` parses YAML into these types and callers pass them in.
    Defaults reproduce the platform's standard plan terms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from fee_ledger.domain.dtos import Cadence


def _default_counts() -> Mapping[Cadence, int]:
    return MappingProxyType({Cadence.WEEKLY: 12, Cadence.MONTHLY: 3})


def _default_periods() -> Mapping[Cadence, int]:
    return MappingProxyType({Cadence.WEEKLY: 7, Cadence.MONTHLY: 30})


@dataclass(frozen=True)
class PlanPolicy:
    """
    Terms used to split a total fee into a plan.

    ``installment_counts`` and ``cadence_period_days`` are keyed by cadence.
    ``next_due_period_days`` is how far an approval pushes the next due date.
    """

    deposit_rate: Decimal = Decimal("0.25")
    platform_fee_rate: Decimal = Decimal("0.025")
    installment_counts: Mapping[Cadence, int] = field(default_factory=_default_counts)
    cadence_period_days: Mapping[Cadence, int] = field(default_factory=_default_periods)
    next_due_period_days: int = 30

    def __post_init__(self) -> None:
        if not (Decimal("0") <= self.deposit_rate <= Decimal("1")):
            raise ValueError(f"deposit_rate must be within [0, 1], got {self.deposit_rate}")
        if self.platform_fee_rate < 0:
            raise ValueError(f"platform_fee_rate must be >= 0, got {self.platform_fee_rate}")
        for cadence in Cadence:
            if self.installment_counts.get(cadence, 0) < 1:
                raise ValueError(f"installment count for {cadence.value} must be >= 1")
            if self.cadence_period_days.get(cadence, 0) < 1:
                raise ValueError(f"period for {cadence.value} must be >= 1 day")
        if self.next_due_period_days < 1:
            raise ValueError("next_due_period_days must be >= 1")


@dataclass(frozen=True)
class AlertPolicy:
    """How close a due date must be before a dependent counts as due soon."""

    due_soon_window_days: int = 7

    def __post_init__(self) -> None:
        if self.due_soon_window_days < 0:
            raise ValueError("due_soon_window_days must be >= 0")


DEFAULT_PLAN_POLICY = PlanPolicy()
DEFAULT_ALERT_POLICY = AlertPolicy()
