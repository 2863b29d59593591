"""
Module: fee_ledger.models.dependent
Responsibility: ORM persistence for enrolled dependents and their plans.
Architecture position: Ledger > Models.

Invariants enforced:
    - status and cadence are restricted to their enum values.
    - The school link is ``institution_id``; ``institution_name`` is a
      denormalized display copy.  There is no foreign key; LedgerStore
      performs the cascades.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fee_ledger.db.base import Base

if TYPE_CHECKING:
    from fee_ledger.domain.dtos import Dependent


class DependentModel(Base):
    __tablename__ = "dependents"

    __table_args__ = (
        CheckConstraint(
            "status IN ('OnTrack', 'DueSoon', 'Overdue', 'Completed')",
            name="ck_dependents_valid_status",
        ),
        CheckConstraint(
            "cadence IN ('Weekly', 'Monthly')",
            name="ck_dependents_valid_cadence",
        ),
        Index("ix_dependents_owner", "owner_id"),
        Index("ix_dependents_institution", "institution_id"),
    )

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    institution_id: Mapped[str] = mapped_column(String(64), nullable=False)
    institution_name: Mapped[str] = mapped_column(String(200), nullable=False)
    grade: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    total_fee: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(nullable=False)
    next_installment_amount: Mapped[Decimal] = mapped_column(nullable=False)
    next_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    cadence: Mapped[str] = mapped_column(String(16), nullable=False)

    def to_dto(self) -> Dependent:
        from fee_ledger.domain.dtos import Cadence, Dependent, DependentStatus

        return Dependent(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            institution_id=self.institution_id,
            institution_name=self.institution_name,
            grade=self.grade,
            total_fee=self.total_fee,
            paid_amount=self.paid_amount,
            next_installment_amount=self.next_installment_amount,
            next_due_date=self.next_due_date,
            status=DependentStatus(self.status),
            cadence=Cadence(self.cadence),
        )

    def apply(self, dto: Dependent) -> None:
        self.owner_id = dto.owner_id
        self.name = dto.name
        self.institution_id = dto.institution_id
        self.institution_name = dto.institution_name
        self.grade = dto.grade
        self.total_fee = dto.total_fee
        self.paid_amount = dto.paid_amount
        self.next_installment_amount = dto.next_installment_amount
        self.next_due_date = dto.next_due_date
        self.status = dto.status.value
        self.cadence = dto.cadence.value

    @classmethod
    def from_dto(cls, dto: Dependent) -> DependentModel:
        model = cls(id=dto.id)
        model.apply(dto)
        return model
