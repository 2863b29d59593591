"""
Module: fee_ledger.models.transaction
Responsibility: ORM persistence for submitted payments.
Architecture position: Ledger > Models.

Invariants enforced:
    - status is one of Pending / Successful / Failed (check constraint).
      Transition rules are enforced by the lifecycle controller.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fee_ledger.db.base import Base

if TYPE_CHECKING:
    from fee_ledger.domain.dtos import Transaction


class TransactionModel(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint(
            "status IN ('Pending', 'Successful', 'Failed')",
            name="ck_transactions_valid_status",
        ),
        Index("ix_transactions_dependent", "dependent_id"),
        Index("ix_transactions_payer", "payer_user_id"),
        Index("ix_transactions_institution_status", "institution_id", "status"),
    )

    dependent_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payer_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    dependent_name: Mapped[str] = mapped_column(String(200), nullable=False)
    institution_id: Mapped[str] = mapped_column(String(64), nullable=False)
    institution_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    receipt_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> Transaction:
        from fee_ledger.domain.dtos import Transaction, TransactionStatus

        return Transaction(
            id=self.id,
            dependent_id=self.dependent_id,
            payer_user_id=self.payer_user_id,
            dependent_name=self.dependent_name,
            institution_id=self.institution_id,
            institution_name=self.institution_name,
            amount=self.amount,
            created_at=self.created_at,
            status=TransactionStatus(self.status),
            receipt_ref=self.receipt_ref,
            resolved_at=self.resolved_at,
        )

    def apply(self, dto: Transaction) -> None:
        self.dependent_id = dto.dependent_id
        self.payer_user_id = dto.payer_user_id
        self.dependent_name = dto.dependent_name
        self.institution_id = dto.institution_id
        self.institution_name = dto.institution_name
        self.amount = dto.amount
        self.created_at = dto.created_at
        self.status = dto.status.value
        self.receipt_ref = dto.receipt_ref
        self.resolved_at = dto.resolved_at

    @classmethod
    def from_dto(cls, dto: Transaction) -> TransactionModel:
        model = cls(id=dto.id)
        model.apply(dto)
        return model
