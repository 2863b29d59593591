"""
Module: fee_ledger.models.user
Responsibility: ORM persistence for platform accounts.
Architecture position: Ledger > Models.  May import from db/ only (domain DTOs
    are imported inside the conversion methods).

Invariants enforced:
    - role is one of the four known role values (check constraint).
    - Settlement bank details are flat nullable columns; they are set only
      for bursars (validated upstream by LedgerStore).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fee_ledger.db.base import Base

if TYPE_CHECKING:
    from fee_ledger.domain.dtos import User


class UserModel(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('guardian', 'administrator', 'institution_bursar', 'student')",
            name="ck_users_valid_role",
        ),
        Index("ix_users_institution", "institution_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    institution_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(40), nullable=True)

    def to_dto(self) -> User:
        """Convert ORM model to frozen domain DTO."""
        from fee_ledger.domain.dtos import Role, SettlementAccount, User

        bank = None
        if self.bank_name or self.account_name or self.account_number:
            bank = SettlementAccount(
                bank_name=self.bank_name or "",
                account_name=self.account_name or "",
                account_number=self.account_number or "",
            )
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            role=Role(self.role),
            institution_id=self.institution_id,
            bank_details=bank,
            phone_number=self.phone_number,
        )

    def apply(self, dto: User) -> None:
        """Copy every mutable field from ``dto`` onto this row."""
        self.name = dto.name
        self.email = dto.email
        self.role = dto.role.value
        self.institution_id = dto.institution_id
        self.phone_number = dto.phone_number
        bank = dto.bank_details
        self.bank_name = bank.bank_name if bank else None
        self.account_name = bank.account_name if bank else None
        self.account_number = bank.account_number if bank else None

    @classmethod
    def from_dto(cls, dto: User) -> UserModel:
        model = cls(id=dto.id)
        model.apply(dto)
        return model
