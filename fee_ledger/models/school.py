"""
Module: fee_ledger.models.school
Responsibility: ORM persistence for institutions.
Architecture position: Ledger > Models.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fee_ledger.db.base import Base

if TYPE_CHECKING:
    from fee_ledger.domain.dtos import School


class SchoolModel(Base):
    __tablename__ = "schools"

    __table_args__ = (
        CheckConstraint("baseline_headcount >= 0", name="ck_schools_headcount"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    baseline_headcount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_dto(self) -> School:
        from fee_ledger.domain.dtos import School

        return School(
            id=self.id,
            name=self.name,
            address=self.address,
            contact_email=self.contact_email,
            baseline_headcount=self.baseline_headcount,
        )

    def apply(self, dto: School) -> None:
        self.name = dto.name
        self.address = dto.address
        self.contact_email = dto.contact_email
        self.baseline_headcount = dto.baseline_headcount

    @classmethod
    def from_dto(cls, dto: School) -> SchoolModel:
        model = cls(id=dto.id)
        model.apply(dto)
        return model
