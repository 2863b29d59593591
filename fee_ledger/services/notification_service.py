"""
NotificationService -- broadcasts, due-date alerts and read receipts.

Lifecycle notifications are written by ``TransactionLifecycleController`` as
part of approve/decline.  This service covers the notifications that are
not tied to a payment.  There is no scheduler; due alerts are sent when a
caller asks for them.
"""

from __future__ import annotations

from datetime import date

from fee_ledger.domain.clock import Clock
from fee_ledger.domain.dtos import Notification
from fee_ledger.domain.identity import EffectiveIdentity
from fee_ledger.domain.notifications import broadcast_draft, due_alert_drafts
from fee_ledger.domain.policy import DEFAULT_ALERT_POLICY, AlertPolicy
from fee_ledger.domain.scoping import (
    may_broadcast,
    may_read_notification,
    visible_dependents,
)
from fee_ledger.domain.validation import require_text
from fee_ledger.exceptions import (
    FeeLedgerError,
    NotificationNotFoundError,
    PermissionDeniedError,
)
from fee_ledger.logging_config import get_logger
from fee_ledger.services.base import BaseService
from fee_ledger.services.ledger_store import LedgerStore

logger = get_logger("services.notifications")


class NotificationService(BaseService):
    def __init__(
        self,
        ledger: LedgerStore,
        clock: Clock | None = None,
        alert_policy: AlertPolicy | None = None,
    ):
        super().__init__(ledger, clock)
        self._alerts = alert_policy or DEFAULT_ALERT_POLICY

    def send_broadcast(self, identity: EffectiveIdentity, title: str, message: str) -> Notification:
        """Publish an announcement every account can see."""
        with self._bind(identity):
            try:
                if not may_broadcast(identity):
                    raise PermissionDeniedError(identity.role.value, "broadcast announcements")
                draft = broadcast_draft(
                    require_text(title, "title"), require_text(message, "message"),
                )
                notification = self.ledger.add_notification(draft)
            except FeeLedgerError as exc:
                logger.warning("broadcast_rejected", extra={"error_code": exc.code})
                raise
            logger.info("broadcast_sent", extra={"notification_id": notification.id})
            return notification

    def send_due_alerts(
        self, identity: EffectiveIdentity, today: date | None = None
    ) -> tuple[Notification, ...]:
        """
        Warn owners of the visible dependents that are due soon or overdue.

        ``today`` defaults to the clock's current UTC date.
        """
        today = today or self.clock.now_utc().date()
        with self._bind(identity):
            snapshot = self.ledger.snapshot()
            dependents = visible_dependents(identity, snapshot.dependents, snapshot.schools)
            drafts = due_alert_drafts(dependents, today, self._alerts.due_soon_window_days)
            sent = self.ledger.add_notifications(drafts)
            logger.info(
                "due_alerts_sent",
                extra={"count": len(sent), "as_of": today.isoformat()},
            )
            return sent

    def mark_read(self, identity: EffectiveIdentity, notification_id: str) -> Notification:
        """
        Flag a notification as read.

        A notification the identity cannot see is reported as not found.
        """
        with self._bind(identity):
            try:
                notification = self.ledger.get_notification(notification_id)
                if not may_read_notification(identity, notification):
                    raise NotificationNotFoundError(notification_id)
                return self.ledger.mark_notification_read(notification_id)
            except FeeLedgerError as exc:
                logger.warning(
                    "mark_read_rejected",
                    extra={"notification_id": notification_id, "error_code": exc.code},
                )
                raise
