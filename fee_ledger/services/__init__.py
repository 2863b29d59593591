"""
Ledger services -- the command side.

``LedgerStore`` is the only mutation path; the command services check
authorization with ``domain.scoping`` and then write through it.
"""

from fee_ledger.services.directory_service import DirectoryService
from fee_ledger.services.enrollment_service import Enrollment, EnrollmentService
from fee_ledger.services.ledger_store import LedgerStore
from fee_ledger.services.lifecycle_service import TransactionLifecycleController
from fee_ledger.services.notification_service import NotificationService

__all__ = [
    "DirectoryService",
    "Enrollment",
    "EnrollmentService",
    "LedgerStore",
    "NotificationService",
    "TransactionLifecycleController",
]
