"""
Module: fee_ledger.db.types
Responsibility: Column types that round-trip ledger values exactly on every
    supported backend.
Architecture position: Ledger > DB.  May be imported by models/.  MUST NOT
    import from domain/, services/ or selectors/.

Invariants enforced:
    - Money is never stored as float.  ``ExactDecimal`` persists the canonical
      string form of a Decimal, so unrounded plan amounts (e.g. a third of a
      balance) read back identical to what was written, including on SQLite
      which has no native decimal type.
    - Timestamps read back timezone-aware.  ``UTCDateTime`` normalizes to UTC
      on write and re-attaches UTC on read for backends that drop tzinfo.
"""

from datetime import timezone
from decimal import Decimal

from sqlalchemy import DateTime, String
from sqlalchemy.types import TypeDecorator


class ExactDecimal(TypeDecorator):
    """
    Decimal stored as its string representation.

    Guarantees:
        - process_bind_param: Decimal -> str on INSERT/UPDATE.
        - process_result_value: str -> Decimal on SELECT.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime, normalized to UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
