"""
Module: fee_ledger.models.notification
Responsibility: ORM persistence for notifications.
Architecture position: Ledger > Models.

Notifications are append-only apart from the ``read`` flag.  A NULL
``target_user_id`` marks a broadcast.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fee_ledger.db.base import Base

if TYPE_CHECKING:
    from fee_ledger.domain.dtos import Notification


class NotificationModel(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            "category IN ('payment', 'due-alert', 'announcement')",
            name="ck_notifications_valid_category",
        ),
        CheckConstraint(
            "severity IN ('info', 'success', 'warning', 'error')",
            name="ck_notifications_valid_severity",
        ),
        Index("ix_notifications_target", "target_user_id"),
    )

    target_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> Notification:
        from fee_ledger.domain.dtos import Notification, NotificationCategory, Severity

        return Notification(
            id=self.id,
            target_user_id=self.target_user_id,
            category=NotificationCategory(self.category),
            title=self.title,
            message=self.message,
            created_at=self.created_at,
            severity=Severity(self.severity),
            read=self.read,
        )

    def apply(self, dto: Notification) -> None:
        self.target_user_id = dto.target_user_id
        self.category = dto.category.value
        self.title = dto.title
        self.message = dto.message
        self.created_at = dto.created_at
        self.severity = dto.severity.value
        self.read = dto.read

    @classmethod
    def from_dto(cls, dto: Notification) -> NotificationModel:
        model = cls(id=dto.id)
        model.apply(dto)
        return model
