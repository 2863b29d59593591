"""
Module: fee_ledger.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.
    Provides the string primary key convention and the type annotation map
    for consistent column types.
Architecture position: Ledger > DB.  This is the lowest-level import target
    within the ledger.  ALL model files import from here.  This module MUST
    NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - String primary keys: ids are minted by ``LedgerStore`` through its
      ``IdGenerator``; the database never generates them.
    - Decimal maps to ExactDecimal, datetime to UTCDateTime.  NEVER use
      float for monetary amounts.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from fee_ledger.db.types import ExactDecimal, UTCDateTime


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is a caller-supplied String(64) primary key.
        - Decimal columns are lossless; datetime columns are tz-aware.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: ExactDecimal(),
        datetime: UTCDateTime(),
        str: String(255),
    }

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
