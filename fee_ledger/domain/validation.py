"""
Field and record validation for ledger writes.

Pure functions.  Each ``validate_*`` returns nothing and raises
``InvalidInputError`` naming the offending field.  ``LedgerStore`` runs the
relevant validator before every insert or update so no partially valid
record reaches a store backend.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from fee_ledger.domain.dtos import (
    Dependent,
    DependentStatus,
    Role,
    School,
    Transaction,
    User,
)
from fee_ledger.exceptions import InvalidInputError

ZERO = Decimal("0")


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce ``value`` to a finite Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.  Booleans are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(field, f"expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip()) if isinstance(value, (str, float)) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInputError(field, f"expected a number, got {value!r}") from None
    if not result.is_finite():
        raise InvalidInputError(field, f"must be finite, got {value!r}")
    return result


def require_non_negative(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < ZERO:
        raise InvalidInputError(field, f"must be >= 0, got {amount}")
    return amount


def require_positive(value: Any, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount <= ZERO:
        raise InvalidInputError(field, f"must be > 0, got {amount}")
    return amount


def require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInputError(field, "must not be empty")
    return str(value).strip()


def parse_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise InvalidInputError("role", f"unknown role {value!r}") from None


def validate_user(user: User) -> None:
    require_text(user.name, "name")
    require_text(user.email, "email")
    if not isinstance(user.role, Role):
        raise InvalidInputError("role", f"unknown role {user.role!r}")
    if user.role is Role.INSTITUTION_BURSAR:
        if not user.institution_id:
            raise InvalidInputError(
                "institution_id", "required for institution_bursar accounts"
            )
    else:
        if user.institution_id:
            raise InvalidInputError(
                "institution_id", f"not allowed for role {user.role.value}"
            )
        if user.bank_details is not None:
            raise InvalidInputError(
                "bank_details", "settlement details are only held for bursars"
            )


def validate_school(school: School) -> None:
    require_text(school.name, "name")
    if school.baseline_headcount < 0:
        raise InvalidInputError(
            "baseline_headcount", f"must be >= 0, got {school.baseline_headcount}"
        )


def validate_dependent(dependent: Dependent) -> None:
    require_text(dependent.name, "name")
    require_text(dependent.owner_id, "owner_id")
    require_text(dependent.institution_id, "institution_id")
    total = require_non_negative(dependent.total_fee, "total_fee")
    paid = require_non_negative(dependent.paid_amount, "paid_amount")
    require_non_negative(dependent.next_installment_amount, "next_installment_amount")
    if paid > total:
        raise InvalidInputError(
            "paid_amount", f"{paid} exceeds total_fee {total}"
        )
    completed = dependent.status is DependentStatus.COMPLETED
    if completed != (paid >= total):
        raise InvalidInputError(
            "status",
            f"{dependent.status.value} is inconsistent with paid {paid} of {total}",
        )


def validate_transaction(transaction: Transaction) -> None:
    require_text(transaction.dependent_id, "dependent_id")
    require_text(transaction.payer_user_id, "payer_user_id")
    require_positive(transaction.amount, "amount")
