"""
Typed exception hierarchy for the fee ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the presentation layer, scripts, tests) must be able to react to a
failure without parsing its message.  Every error therefore:
  1. Has its own exception class (catch by type, not by message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        controller.approve(identity, tx_id)
    except Exception as e:
        if "not pending" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way (what this module enables):
    try:
        controller.approve(identity, tx_id)
    except InvalidStateError as e:
        show_banner(code=e.code, current=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FeeLedgerError (base)
    |
    +-- InvalidInputError
    |
    +-- NotFoundError
    |   +-- UserNotFoundError
    |   +-- SchoolNotFoundError
    |   +-- DependentNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- NotificationNotFoundError
    |
    +-- InvalidStateError
    |   +-- TransactionAlreadyResolvedError
    |   +-- PlanAlreadyCompletedError
    |
    +-- PermissionDeniedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                      | When Raised
------------|---------------------------|------------------------------------------
Input       | INVALID_INPUT             | Negative fee, unknown cadence, bad record
------------|---------------------------|------------------------------------------
Not found   | USER_NOT_FOUND            | User id doesn't exist
            | SCHOOL_NOT_FOUND          | School id doesn't exist
            | DEPENDENT_NOT_FOUND       | Dependent id doesn't exist
            | TRANSACTION_NOT_FOUND     | Transaction id doesn't exist
            | NOTIFICATION_NOT_FOUND    | Notification id doesn't exist
------------|---------------------------|------------------------------------------
State       | TRANSACTION_ALREADY_      | approve/decline on a non-Pending payment
            |   RESOLVED                |
            | PLAN_ALREADY_COMPLETED    | New payment against a fully paid plan
------------|---------------------------|------------------------------------------
Permission  | PERMISSION_DENIED         | Role lacks authority for the mutation

All of these are local, synchronous and non-retryable.  The core makes no
network calls of its own, so there is no transient-failure category.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError, PermissionError, etc.)?
   Domain exceptions should be catchable as a group.  ``PermissionDeniedError``
   in particular must not be confused with the builtin ``PermissionError``
   raised by the operating system for file access.

2. WHY A code CLASS ATTRIBUTE?
   Codes are static per exception type and can be read without an instance.
"""


class FeeLedgerError(Exception):
    """
    Base exception for all fee ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FEE_LEDGER_ERROR"


# Input validation


class InvalidInputError(FeeLedgerError):
    """Malformed or out-of-range argument."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Lookup failures


class NotFoundError(FeeLedgerError):
    """Referenced record does not exist."""

    code: str = "NOT_FOUND"
    entity: str = "record"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity: str = "user"


class SchoolNotFoundError(NotFoundError):
    code: str = "SCHOOL_NOT_FOUND"
    entity: str = "school"


class DependentNotFoundError(NotFoundError):
    code: str = "DEPENDENT_NOT_FOUND"
    entity: str = "dependent"


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"
    entity: str = "transaction"


class NotificationNotFoundError(NotFoundError):
    code: str = "NOTIFICATION_NOT_FOUND"
    entity: str = "notification"


# State machine violations


class InvalidStateError(FeeLedgerError):
    """Transition attempted from a state that does not allow it."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_id: str, current_status: str, attempted: str):
        self.entity_id = entity_id
        self.current_status = current_status
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} {entity_id}: current status is {current_status}"
        )


class TransactionAlreadyResolvedError(InvalidStateError):
    """Payment is already Successful or Failed and cannot change again."""

    code: str = "TRANSACTION_ALREADY_RESOLVED"


class PlanAlreadyCompletedError(InvalidStateError):
    """Dependent's plan is fully paid; no further payments are accepted."""

    code: str = "PLAN_ALREADY_COMPLETED"

    def __init__(self, dependent_id: str):
        super().__init__(dependent_id, "Completed", "submit a payment for")


# Authorization


class PermissionDeniedError(FeeLedgerError):
    """The effective role lacks authority for the requested action."""

    code: str = "PERMISSION_DENIED"

    def __init__(self, role: str, action: str):
        self.role = role
        self.action = action
        super().__init__(f"Role '{role}' is not permitted to {action}")
